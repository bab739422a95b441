"""ASGI edge — request pipeline and response sending."""
