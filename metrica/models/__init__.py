"""
MétricaAgro Workflow Service
Shared SQLAlchemy extension instance.

All model modules import ``db`` from here so that the application factory
can bind a single extension to the Flask app.
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
