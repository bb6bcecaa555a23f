import sys

from site_deploy.deploy import main

sys.exit(main())
