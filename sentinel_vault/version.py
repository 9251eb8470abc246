"""SentinelVault Meta information.
   SentinelVault keeps short text secrets encrypted at rest behind a master password.
"""
__title__ = 'sentinel_vault'
__description__ = (
   'SentinelVault keeps short text secrets encrypted at rest '
   'behind a master password, with per-secret leases.'
)
__version__ = '0.1.25'
__copyright__ = 'Copyright (c) 2025 Joseph Godsown Anointed'
__author__ = 'Joseph Godsown Anointed'
__author_email__ = 'anointedgodsownjoseph@gmail.com'
__license__ = 'Apache-2.0'
