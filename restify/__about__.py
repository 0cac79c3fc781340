__version__ = "1.0.0"
__description__ = "restify : REST endpoints for Flask-SQLAlchemy models"
