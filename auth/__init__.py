"""auth/ -- Authentication and authorization package for TaskGuard.

Layer rule: auth/ imports only stdlib, third-party libraries, core/, and the
task dataclasses in tasks/models.py. It does NOT import from api/ or audit/.
api/ imports from auth/, not the other way around.
"""
