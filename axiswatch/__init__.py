"""
axiswatch: singularity and joint dynamics safety monitoring for 6-axis arms.
"""

__version__ = "0.1.0"
