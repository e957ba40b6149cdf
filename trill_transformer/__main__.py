"""Entry point wrapper for ``python -m trill_transformer``.

When the package is executed as a module the code here simply forwards
execution to :func:`trill_transformer.main`, so ``python -m
trill_transformer`` and the installed ``trill-transformer`` console script
behave identically.

Example
-------
::

    python -m trill_transformer --input rows.txt --output trills.txt --midi trills.mid
"""

from . import main

if __name__ == "__main__":
    main()
