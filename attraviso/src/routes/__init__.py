"""
Routes package for the Attraviso API
Blueprint-based modular route organization
"""


def register_blueprints(app):
    """Register all route blueprints with the Quart app"""
    from .admin import register as register_admin
    from .attractions import register as register_attractions
    from .media import register as register_media

    register_admin(app)
    register_attractions(app)
    register_media(app)
