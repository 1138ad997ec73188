"""API module for TvorAI.

Routes validate inputs, call the ledger or the generation provider, and
shape responses. Ledger and gateway errors are turned into structured
JSON bodies by handlers registered in the app factory.
"""
