"""
Unattended installation of developer tools from shell scripts.
"""

__version__ = "0.1.0"
