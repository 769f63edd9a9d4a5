# DRAMAS (drama-s)
# An assembler and emulator for the DRAMA teaching machine.
# DRAMAS © 2024 by actorpus is licensed under CC BY-NC-SA 4.0
import getopt
import logging
import pathlib
import sys

from assembler import generate_cli
from emulator import DEFAULT_STEP_LIMIT, Machine, parse_inputs, run_cli

__doc__ = """
Usage:

main.py -i <file>                DRAMA source file
        -o <filename>            word output, one zero padded word per line
        -P <filename>            generate .debug listing
        -r                       run the program after assembling it
        -I <values>              comma separated input values for LEZ
        -s <steps>               step limit (default 10000)
        -v <verbose>
        -V <very verbose>
"""


def main(argv=None):
    _log = logging.getLogger("Main")

    if argv is None:
        argv = sys.argv[1:]

    if not argv:
        argv = ["-h"]

    options = "hi:o:P:rI:s:vV"
    long_options = [
        "help",
        "input=",
        "output=",
        "debug_output=",
        "run",
        "Inputs=",
        "steps=",
        "verbose",
        "super_verbose",
    ]

    try:
        args, _ = getopt.getopt(argv, options, long_options)
    except getopt.GetoptError as e:
        _log.critical(f"{e}. Exiting.")
        raise SystemExit

    out, deb = None, None
    run = False
    inputs = []
    max_steps = DEFAULT_STEP_LIMIT
    log_level = logging.WARNING
    file_path = None

    for arg, val in args:
        if arg in ("-h", "--help"):
            print(__doc__)

            raise SystemExit

        if arg in ("-i", "--input"):
            file_path = pathlib.Path(val).resolve()
            if not file_path.exists():
                _log.critical(f"Could not find input file at {file_path}. Exiting.")
                raise SystemExit

        if arg in ("-o", "--output"):
            out = val

        if arg in ("-P", "--debug_output"):
            deb = val

        if arg in ("-r", "--run"):
            run = True

        if arg in ("-I", "--Inputs"):
            try:
                inputs = parse_inputs(val)
            except ValueError:
                _log.critical(f"Inputs '{val}' are not comma separated integers. Exiting.")
                raise SystemExit

        if arg in ("-s", "--steps"):
            try:
                max_steps = int(val)
            except ValueError:
                _log.critical(f"Step limit '{val}' is not an integer. Exiting.")
                raise SystemExit

        if arg in ("-v", "--verbose"):
            log_level = logging.INFO

        if arg in ("-V", "--super_verbose"):
            log_level = logging.DEBUG

    logging.basicConfig(level=log_level)

    if not file_path:
        _log.critical("No input file found. Exiting.")
        raise SystemExit

    if not any([out, deb, run]):
        _log.critical("Nothing to do, give an output file or -r. Exiting.")
        raise SystemExit

    script = generate_cli(file_path, out, deb)

    if not run:
        return script

    return run_cli(Machine.from_program(script.program), inputs, max_steps)


if __name__ == "__main__":
    main()
