"""
Utilities for the account portal

Configuration, logging, the Supabase client and FastAPI dependencies.
"""
