# ==== SERVICES PACKAGE ==== #

"""
Services package for the exception engine.

Contains the decision primitives, the single-line and consolidated-line
resolvers, the exception sweep orchestrator and the pick completion
processor.
"""
