"""
Account core services.

- credential_store: CRUD over users, addresses and token records
- session_tokens: bearer session token issuance and validation
- password_reset: single-use reset tokens
- accounts: use-case orchestration
- notifications: outbound email gateway
- image_storage: profile image storage backends
"""
