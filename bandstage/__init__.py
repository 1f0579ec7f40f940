"""Band Stage - Core equipment modules.

Provides:
- SQLite models and DB primitives for members, microphones, instruments,
  amplifiers and PA gear
- The equipment store (single writer, snapshot read)
- Assignment and channel list resolvers
"""

__version__ = "0.1.0"
