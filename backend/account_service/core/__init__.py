"""
Core application modules.
Contains essential infrastructure components:
- db: Database configuration and connection management
- errors: Error taxonomy shared by services and routes
- security: Password hashing, token signing and the service clock
"""
