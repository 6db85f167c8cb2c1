"""
Factories package - the tenant account and its billing record.
"""
