"""PinAuth Meta information.
   PinAuth keeps a 6-digit PIN sealed at rest and derives rotating codes from it.
"""
__title__ = 'pinauth'
__description__ = (
   'PinAuth keeps a 6-digit PIN sealed at rest and derives '
   'rotating time-based codes from it.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2026 PinAuth developers'
__author__ = 'PinAuth developers'
__license__ = 'Apache-2.0'
