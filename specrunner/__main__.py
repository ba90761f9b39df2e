import sys

from rich.pretty import pprint

from specrunner import *


def show(configuration, err, out):
    """default runner: print the resolved configuration."""
    pprint(configuration, console=out.console())
    return 0


def main(argv=None):
    """
    `spec` entry point: resolve sys.argv[1:] (or `argv`) on the real streams
    and turn exit requests and faults into process exit statuses.
    """
    err = Channel.stderr(colorful=sys.stderr.isatty())
    out = Channel.stdout(colorful=sys.stdout.isatty())
    try:
        status = run(sys.argv[1:] if argv is None else argv, err, out, runner=show)
    except RunnerExit as request:
        sys.exit(request.status)
    except RunnerError as error:
        sys.exit(error.status)
    sys.exit(status or 0)


if __name__ == '__main__':
    main()
