"""
Domain layer for the HR operations core.
Contains state machines, contexts and business rules
separated from data persistence concerns.
"""
