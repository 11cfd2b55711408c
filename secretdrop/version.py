"""secretdrop meta information.
   Self-destructing, read-once secret messages backed by HashiCorp Vault.
"""
__title__ = 'secretdrop'
__description__ = (
   'Self-destructing, read-once secret messages '
   'backed by HashiCorp Vault.'
)
__version__ = '1.0.0'
__license__ = 'MIT'
