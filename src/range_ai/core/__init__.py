"""Role-independent building blocks: entities, encoders, actions and agents."""
