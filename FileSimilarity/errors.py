class InputError(ValueError):
    """Raised for invalid input: bad file lists, unreadable paths, bad options."""
