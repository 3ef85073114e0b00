from typing import Any, NewType


Manifest = NewType("Manifest", dict[str, Any])
""" A single Kubernetes resource, decoded into plain Python data. """

Values = NewType("Values", dict[str, Any])
""" The parameter set that templates are rendered against. """
