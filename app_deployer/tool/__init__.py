"""Command line tool for running app-deployer against local manifests."""
