"""Conjunto de dados reutilizável para cenários de teste backend."""

SUPER_ADMIN = {
    "email": "root@rankitpro.com",
    "username": "root",
    "password": "super-secret-1",
    "role": "super_admin",
}

COMPANY_ONE = {"name": "Test Company", "plan": "pro", "usage_limit": 200}
COMPANY_TWO = {"name": "Second Company", "plan": "starter", "usage_limit": 50}

COMPANY_ONE_ADMIN = {
    "email": "admin@testcompany.com",
    "username": "testcompany_admin",
    "password": "company123",
    "role": "company_admin",
}

COMPANY_ONE_TECH = {
    "email": "john@testcompany.com",
    "username": "john_tech",
    "password": "tech12345",
    "role": "technician",
}

COMPANY_TWO_ADMIN = {
    "email": "admin@secondcompany.com",
    "username": "secondcompany_admin",
    "password": "company456",
    "role": "company_admin",
}

COMPANY_TWO_TECH = {
    "email": "maria@secondcompany.com",
    "username": "maria_tech",
    "password": "tech67890",
    "role": "technician",
}

COMPANY_ONE_SALES = {
    "email": "sam@testcompany.com",
    "username": "sam_sales",
    "password": "sales12345",
    "role": "sales_staff",
}

CHECK_IN_PAYLOAD = {
    "job_type": "AC Repair",
    "notes": "Replaced the capacitor",
    "customer_name": "Pat Doe",
    "location": "Austin, TX",
    "latitude": 30.2672,
    "longitude": -97.7431,
}

WORDPRESS_CONFIG = {
    "site_url": "https://blog.testcompany.com",
    "username": "wp-bot",
    "application_password": "abcd efgh ijkl mnop",
    "default_category_id": 12,
}

TENANT_ACCESS_DENIED = {
    "expected_status_code": 403,
    "expected_message": "Access denied to this company",
}
