"""
Launch Orchestration Engine
SQLAlchemy extension instance shared by all model modules.

Usage:
    from launch_engine.models import db
"""

from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()
