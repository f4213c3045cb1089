from .keeper import Keeper
