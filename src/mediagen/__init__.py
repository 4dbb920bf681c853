"""Resumable executor for batched AI image and video generation jobs."""

__version__ = "0.1.0"
