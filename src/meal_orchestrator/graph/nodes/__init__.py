"""Graph node implementations."""
