"""
sovcoin core: exceptions, data model, clock, canonical JSON and signing.
"""
