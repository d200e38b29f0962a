"""
AWS Bastion Login
Exchange a bastion-account credential and an MFA code for short-lived,
role-scoped AWS credentials.
"""

__version__ = "1.0.0"
