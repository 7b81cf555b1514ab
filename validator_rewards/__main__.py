import sys

from validator_rewards.cli import main


sys.exit(main())
