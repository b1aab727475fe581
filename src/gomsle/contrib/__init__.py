"""
Contrib modules for framework and library integrations.

- dependency_injector: GomsleContainer for DI
- fastapi: OAuth2/OIDC connect router and exception handlers
"""
