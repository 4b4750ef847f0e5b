from fibengine.cli import main

raise SystemExit(main())
