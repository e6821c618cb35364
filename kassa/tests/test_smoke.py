"""Public smoke tests for basic module wiring.

Keep these minimal and free of any real-world data.
"""

from __future__ import annotations


def test_imports() -> None:
    import kassa
    import kassa.api.server
    import kassa.application.sales
    import kassa.cli.main
    import kassa.domain
    import kassa.receipt
    import kassa.runtime

    assert kassa is not None
    assert kassa.api.server is not None
    assert kassa.application.sales is not None
    assert kassa.cli.main is not None
    assert kassa.domain is not None
    assert kassa.receipt is not None
    assert kassa.runtime is not None
