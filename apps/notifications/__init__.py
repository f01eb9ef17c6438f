"""Notifications app package.

Tells the other party about every accepted booking transition. Domain
events reach this app through the message bus after the transaction that
produced them has committed; delivery runs in a Celery task and goes
through a pluggable sender.
"""
