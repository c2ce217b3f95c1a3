"""WordPress commit message validation with asynchronous reference annotation."""
