__version__ = "0.4.0"
__description__ = "restify : declarative REST repositories for Flask-SQLAlchemy"
