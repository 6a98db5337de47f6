"""Auth module — identity models, request context, permission gate."""
