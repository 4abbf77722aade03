"""Iron Session Meta information.
   Iron Session stores user-specific data into a sealed, encrypted cookie.
"""
__title__ = 'iron_session'
__description__ = (
   'Iron Session stores user-specific data into a sealed, '
   'encrypted cookie.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/iron-session'
