"""Project root entry point for launching the translation web service."""

from __future__ import annotations

import os

from translation_machine.web import create_app


def main():
    app = create_app()
    port = int(os.environ.get("TRANSLATION_MACHINE_PORT", "5500"))
    # The reloader would fork a second process and orphan running job threads
    app.run(host="0.0.0.0", port=port, debug=True, use_reloader=False, threaded=True)


if __name__ == "__main__":
    main()
