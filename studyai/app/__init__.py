"""Gateway service: authentication, daily allowance, upstream dispatch and relay."""
