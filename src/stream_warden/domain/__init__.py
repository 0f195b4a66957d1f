"""Domain layer: channel models, quality and naming rules, service contracts."""
