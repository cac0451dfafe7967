"""GRUB PBKDF2 Meta information.
   GRUB PBKDF2 derives a salted PBKDF2-SHA512 credential from a password
   typed on the terminal, ready to be pasted into a GRUB configuration.
"""
__title__ = 'grub_pbkdf2'
__description__ = (
   'Interactive PBKDF2-SHA512 credential generator producing '
   'grub.pbkdf2.sha512 password tokens.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 GRUB PBKDF2 developers'
__author__ = 'GRUB PBKDF2 developers'
__license__ = 'Apache-2.0'
__prog__ = 'grub-pbkdf2'
