"""
PURPOSE: FastAPI REST API for ReformAI - HTTP interface for the renovation tracker and the AI schedule
SRP and DRY check: Pass - API layer only, task rules and the LLM schedule live in the reformai package
"""
