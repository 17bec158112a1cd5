"""Core Business Logic Module

Provisioning and authentication orchestration against Keycloak,
independent of the HTTP layer.

Module Structure:
    - keycloak/               : Low-level Keycloak Admin API client
    - token_gateway.py        : Login, refresh and logout at the token endpoints
    - role_resolver.py        : Effective roles and realm/client role grants
    - verification.py         : Email verification gate
    - provisioning_service.py : User creation with rollback, admin operations
    - token_validation.py     : Access-token signature/claims validation
    - gateway.py              : build_gateway(), the single startup step
    - errors.py               : Error kinds surfaced to callers
    - models.py               : Principal, Credential, Role, TokenResponse
    - validators.py           : Local input validation

Usage Pattern:
    from idgateway.config import load_settings
    from idgateway.core.gateway import build_gateway

    gateway = build_gateway(load_settings())
    token = gateway.tokens.login("alice@example.com", "secret")
    gateway.provisioning.create_user("bob@example.com", "secret", "aluno")
"""
