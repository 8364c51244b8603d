"""
Fluency Content API
Reading, listening, speaking, writing and grammar exercises with cache and search projections.
"""

__version__ = "1.0.0"
