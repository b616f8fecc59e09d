"""
Dinner, Decided - a household meal-planning assistant.

Chat-driven onboarding, weekly meal plans, and grocery lists that stay in
sync as meals are added, replaced, modified and removed.
"""

__version__ = "1.0.0"
