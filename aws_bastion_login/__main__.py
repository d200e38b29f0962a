import sys

from aws_bastion_login.cli import main

if __name__ == '__main__':
    sys.exit(main())
