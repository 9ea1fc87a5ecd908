"""
Competitions app.

Holds the Competition and Team aggregates the payment engine reconciles
against. Team subscription fields are owned by payments.SubscriptionService.
"""
