import argparse
import logging
import sys

from smpsreader import read_from_file, TwoStageStochasticProgram
from smpsreader.config_loader import ConfigLoader


def _configure_logging(level: str, log_file=None):
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=handlers,
    )


def _add_input_arguments(parser):
    parser.add_argument("--base", type=str, default="", help="Base name; reads BASE.cor, BASE.tim and BASE.sto.")
    parser.add_argument("--core-file", type=str, default="", help="Path to the .cor file.")
    parser.add_argument("--time-file", type=str, default="", help="Path to the .tim file.")
    parser.add_argument("--sto-file", type=str, default="", help="Path to the .sto file.")


def _load_program(base, core_file, time_file, sto_file) -> TwoStageStochasticProgram:
    smps = read_from_file(base, cor_filename=core_file, tim_filename=time_file, sto_filename=sto_file)
    return TwoStageStochasticProgram.from_smps(smps)


def run_from_config(config_path: str):
    config = ConfigLoader.load_yaml_config(config_path)
    _configure_logging(config['log_level'], config['log_file'])
    logger = logging.getLogger(__name__)
    logger.info(f"Running instance '{config['instance_name']}' from {config_path}")

    program = _load_program("", config['smps_core_file'], config['smps_time_file'], config['smps_sto_file'])
    if config['print_summary']:
        program.print_summary()
    if config['sof_file']:
        from smpsreader.sof_writer import write_to_file
        write_to_file(program, config['sof_file'])
    if config['hdf5_file']:
        from smpsreader.hdf5_io import save_hdf5
        save_hdf5(program, config['hdf5_file'])


def main(argv=None):
    parser = argparse.ArgumentParser(description="Read SMPS files into a two-stage stochastic program.")
    parser.add_argument("--log-level", type=str, default="WARNING",
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], help="Logging level.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Summary subcommand
    parser_summary = subparsers.add_parser("summary", help="Read an instance and print its structure.")
    _add_input_arguments(parser_summary)

    # StochOptFormat export subcommand
    parser_sof = subparsers.add_parser("export_sof", help="Write the instance as a StochOptFormat file.")
    _add_input_arguments(parser_sof)
    parser_sof.add_argument("--output", type=str, required=True, help="Output .sof.json (or .sof.json.gz) path.")

    # HDF5 subcommand
    parser_h5 = subparsers.add_parser("save_hdf5", help="Save the assembled program to HDF5.")
    _add_input_arguments(parser_h5)
    parser_h5.add_argument("--output", type=str, required=True, help="Output .h5 path.")

    # Config-driven run
    parser_run = subparsers.add_parser("run", help="Run everything named in a YAML configuration file.")
    parser_run.add_argument("--config", type=str, required=True, help="Path to a YAML configuration file.")

    args = parser.parse_args(argv)

    if args.command == "run":
        run_from_config(args.config)
        return 0

    _configure_logging(args.log_level)
    program = _load_program(args.base, args.core_file, args.time_file, args.sto_file)

    if args.command == "summary":
        program.print_summary()
    elif args.command == "export_sof":
        from smpsreader.sof_writer import write_to_file
        write_to_file(program, args.output)
    elif args.command == "save_hdf5":
        from smpsreader.hdf5_io import save_hdf5
        save_hdf5(program, args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
