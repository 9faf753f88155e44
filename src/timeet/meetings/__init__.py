"""Meeting lifecycle module -- aggregate schemas, persistence, service, and start scheduler."""
