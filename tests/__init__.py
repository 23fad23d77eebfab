"""Tests for pyomnilogic."""
