"""Top-level package for the Event Budget Dashboard.

The primary modules are:

* ``aggregation``: classification, totals and the expense distribution
* ``table_view``: filtering and sorting of the entry table
* ``editing``: the inline cell edit state machine
* ``services``: workflows that talk to the data store and receipt storage
* ``visualization``: Plotly figures

To run the dashboard from the command line you can execute:

```bash
python run_dashboard.py
```
"""

from . import aggregation  # noqa: F401  # re-exported for convenience
from . import editing  # noqa: F401  # re-exported for convenience
from . import table_view  # noqa: F401  # re-exported for convenience

__all__ = ["aggregation", "editing", "table_view"]
