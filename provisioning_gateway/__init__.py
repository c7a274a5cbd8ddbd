"""User provisioning gateway.

To use the Flask app:
    from provisioning_gateway.flask_app import create_app

To use the orchestrator directly:
    from provisioning_gateway.config import load_settings
    from provisioning_gateway.core.provisioning_service import ProvisioningService

    service = ProvisioningService.from_config(load_settings())
"""
# Note: flask_app is not imported here so the core can be used without Flask
