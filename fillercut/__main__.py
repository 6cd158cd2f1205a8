"""Package entry point for ``python -m fillercut``.

WHY: Users run the engine as ``python -m fillercut detect ...`` from the
terminal, or ``python -m fillercut --serve`` to start the HTTP API for
the editor front-end.

HOW: Checks sys.argv for the ``--serve`` flag. If present, starts the
FastAPI app under uvicorn. Otherwise, delegates to the CLI's main().

RULES:
- ``--serve`` flag launches the HTTP API
- Without ``--serve``, falls through to the CLI
"""

import sys

if __name__ == "__main__":
    if "--serve" in sys.argv:
        from fillercut.server.app import run_api
        run_api()
    else:
        from fillercut.cli import main
        main()
