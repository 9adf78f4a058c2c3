"""Meal-planning pipelines run as background jobs or synchronous edits."""
