import json
import sys

from mysql_source.app_logging import get_log_config


def main():
    debug = "--debug" in sys.argv[1:]
    sys.stdout.write(json.dumps(get_log_config(debug), indent=2) + "\n")


if __name__ == "__main__":
    main()
