"""Engine module for the admin console's operation facade."""

from .admin_engine import AdminEngine, Collaborators

__all__ = ['AdminEngine', 'Collaborators']
