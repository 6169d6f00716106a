"""
Service-layer errors, translated to HTTP responses by the API routes.
"""


class EntityNotFoundError(LookupError):
    """Referenced row does not exist"""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class InvalidOrderError(ValueError):
    """Order input rejected before pricing (empty cart, bad quantity)"""
