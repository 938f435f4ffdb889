"""UGC Pipeline - AI-generated avatar, product and photo content.

Turns validated generation requests into provider calls, tracks per-scene
progress, meters credits and assembles the final result.
"""

__version__ = "0.1.0"
