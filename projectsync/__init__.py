"""
Replication of commercetools master data from a source project to a target project.
"""

__version__ = '0.1.0'
