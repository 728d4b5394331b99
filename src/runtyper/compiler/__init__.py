"""Driver: loading, passes and code generation in one call."""
