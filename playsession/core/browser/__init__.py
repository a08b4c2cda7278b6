"""
Browser Driver Module

Driver capability interface, launch options and the Playwright implementation.
"""

from .driver import BrowserDriver, Cookie, DrivenContext, StorageDump
from .options import BrowserOptions
from .playwright_driver import PlaywrightDriver

__all__ = ['BrowserDriver', 'Cookie', 'DrivenContext', 'StorageDump', 'BrowserOptions', 'PlaywrightDriver']
