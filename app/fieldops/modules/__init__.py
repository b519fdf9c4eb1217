"""
Feature modules live under this package.

Keep module boundaries clean: each module owns its models and services,
while reusing platform primitives (audit, errors, DB session).
"""
