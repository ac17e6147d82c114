from ledsign.app import main

raise SystemExit(main())
