"""
Services Package

Output handle and session state around the assembly pipeline.
"""

__all__ = ['handle', 'session']
