from pplx.cli import main

raise SystemExit(main())
