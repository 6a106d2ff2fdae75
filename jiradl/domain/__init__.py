"""Domain layer: entities, value objects, domain services and ports."""
