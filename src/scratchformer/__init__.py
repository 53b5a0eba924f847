"""scratchformer: a Transformer-encoder sequence classifier with hand-written backprop."""

__version__ = "0.1.0"
