"""
Primordium — Entity ids
=======================
Monotonic integer ids shared by molecules, protocells and organisms. Only
relative order matters for behaviour, so runs stay reproducible even when
several simulations share a process.
"""

import itertools


_counter = itertools.count(1)


def new_id():
    return next(_counter)
