"""Apartment power and weather analysis."""

from .config import Config
from .join import ModelDataset
from .pipeline import Pipeline

__all__ = ['Config', 'ModelDataset', 'Pipeline']
