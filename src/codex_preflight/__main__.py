from codex_preflight.cli import main

raise SystemExit(main())
