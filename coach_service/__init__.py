"""
FORMCOACH Coach Service

Exercise recognition, rep counting and form feedback.
"""
