"""
Permission flags carried in the operator token.
Trust: roles are assigned by the identity provider; the core only reads them.
"""
PHARMACY_READ = "pharmacy:read"
PHARMACY_MANAGE = "pharmacy:manage"
PHARMACY_DISTRIBUTE = "pharmacy:distribute"

ALL_ROLES = (PHARMACY_READ, PHARMACY_MANAGE, PHARMACY_DISTRIBUTE)
