from .randomizer import Randomizer

__all__ = ["Randomizer"]
