"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the domain apps (events, payments).
Nothing here knows about registrations or payment providers.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key

Services (import from core.services):
    - BaseService: Base class for service layer
    - ServiceResult: Standard result wrapper for success/failure handling

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ConflictError: State conflicts (duplicates, concurrent modifications)

Helpers (import from core.helpers):
    - hash_bytes: Digest of raw bytes
    - get_client_ip: Client IP extraction behind proxies

Views (import from core.views):
    - health_check: Liveness/readiness endpoint
"""
