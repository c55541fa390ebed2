"""Run the app-deployer command line tool with `python -m app_deployer`."""

from app_deployer.tool.app_deployer import main

if __name__ == "__main__":
    main()
