"""Stage handlers, one module per stage category.

Each handler takes plain model values and returns :class:`Stage` objects
(or ``None``/an empty list when the feature is at its identity value).
"""
