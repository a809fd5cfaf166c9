"""Core game primitives: outcome rules, move commitments and event types.

Kept free of Redis concerns so they can be reused by the engine, scripts and tests.
"""
