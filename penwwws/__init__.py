"""Penwwws school management backend."""
