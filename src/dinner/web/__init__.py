"""
Dinner, Decided - Web API.

FastAPI application factory and routers.
"""
