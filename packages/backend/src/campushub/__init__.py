"""CampusHub — campus information backend.

Serves the mobile app's account layer: registration, login, bearer-token
sessions, profile updates and password reset.
"""

__version__ = "0.1.0"
