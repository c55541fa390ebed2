"""Tests for app-deployer tools."""
