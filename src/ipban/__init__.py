"""Blackhole route reconciliation engine.

The package turns a declarative routes document into kernel blackhole routes:

* :mod:`ipban.parser` reads literal prefixes and ASNs from the document;
* :mod:`ipban.expander` expands ASNs into announced prefixes with ``bgpq4``;
* :mod:`ipban.reconciler` deletes and re-adds every route, best effort.

:class:`ipban.driver.BlackholeDriver` ties the pieces together for one run.
Nothing is kept between runs.
"""

from .driver import BlackholeDriver, RunReport  # noqa: F401

__all__ = ["BlackholeDriver", "RunReport"]
