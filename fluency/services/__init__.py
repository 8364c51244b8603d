"""
Services package
Aggregate loading, completion, synchronization and the question/sub-entity services
"""
