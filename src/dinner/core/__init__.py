"""
Dinner, Decided - Core.

Plan reconciliation, grocery synthesis, meal identity and resets.
Services are wired together in dinner.services.
"""
