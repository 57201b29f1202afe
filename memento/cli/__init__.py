"""
Command line interface for Memento.
"""
