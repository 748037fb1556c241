"""Service layer for SailingLoc domain operations."""
