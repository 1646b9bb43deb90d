"""Domain services: organization directory, role resolution, issue lifecycle and access guard."""
