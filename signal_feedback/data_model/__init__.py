"""Shared data model primitives."""

from signal_feedback.data_model.base import StrictBaseModel


__all__ = ["StrictBaseModel"]
