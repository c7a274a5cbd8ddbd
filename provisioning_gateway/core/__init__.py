"""Core provisioning logic, independent of the HTTP framework.

Module Structure:
    - keycloak/               : Keycloak Admin API client, token provider, error taxonomy
    - organizer_client.py     : Organizer (secondary) service client
    - models.py               : Call-scoped request/record value objects
    - validators.py           : Input validation helpers
    - provisioning_service.py : Create/update/delete/find/list orchestration
"""
