# salon_scheduler/models/base.py
"""Shared declarative base for all scheduling models"""
from sqlalchemy.orm import declarative_base

Base = declarative_base()
