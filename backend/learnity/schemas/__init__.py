"""
Request schemas for the Learnity API.
"""
