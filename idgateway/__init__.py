"""Identity provisioning gateway in front of Keycloak.

To use the Flask app:
    from idgateway.flask_app import create_app

To use the core components directly:
    from idgateway.core.gateway import build_gateway
"""
# Note: flask_app is not imported here so the core and the CLI work
# without pulling in Flask
