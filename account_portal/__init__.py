"""
Account Portal

Login, registration, one-time password and account settings flows on top of
Supabase authentication and a profiles table.
"""

__version__ = "1.0.0"
