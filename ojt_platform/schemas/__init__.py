"""
Schemas module - request/response models and the shapes the scoring services
work on. Everything lives in schemas.py.
"""
