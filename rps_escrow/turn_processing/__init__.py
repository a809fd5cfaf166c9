"""Action validation.

Every state-changing game action flows through the same validator pipeline, so
rejections are uniform whether they come from scripts, tests or the engine.
"""
