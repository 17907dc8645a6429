"""
Permission evaluation feature module.

Implements the organization-scoped permission table and the FastAPI
dependencies that compose it with membership lookup and freeze gating.
"""
