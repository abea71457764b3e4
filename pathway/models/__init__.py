"""
Reentry Pathway
Model package: the shared Flask-SQLAlchemy handle plus the document models.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
