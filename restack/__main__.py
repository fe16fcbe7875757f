#!/usr/bin/env python3

import restack.cli

if __name__ == "__main__":
    restack.cli.main()
