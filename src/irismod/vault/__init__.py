"""
Credential vault for user-supplied provider API keys.

- **encryption.py**: SecretCipher (ChaCha20-Poly1305, ``nonce:ciphertext:tag``
  tokens), format detection and the DecryptionError taxonomy.
- **key_management.py**: One-time provisioning of the 256-bit master key in
  ``.env`` through python-dotenv.
- **providers.py**: Provider detection and format checks from key prefixes.
- **secret_store.py**: SecretStore with encrypt-on-write, decrypt-or-migrate on
  read and purge on corruption.
"""
