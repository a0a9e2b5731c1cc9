"""Domain layer: entities and the notification error taxonomy."""
