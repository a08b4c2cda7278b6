"""
Capability Facades

Navigation, element, input and assertion helpers bound to one session.
"""

from .assertions import AssertionHelpers
from .elements import ElementActions
from .input import InputActions
from .navigation import NavigationActions

__all__ = ['AssertionHelpers', 'ElementActions', 'InputActions', 'NavigationActions']
