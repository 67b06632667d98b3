import yaml
import os
from pathlib import Path
from typing import Dict, Any, Union


class ConfigLoader:
    """
    Configuration loader that supports YAML files with organized structure
    and flattens them into the keys used by run.py.
    """

    DEFAULTS = {
        'instance_name': '',
        'smps_base_name': '',
        'smps_core_file': '',
        'smps_time_file': '',
        'smps_sto_file': '',
        'sof_file': None,
        'hdf5_file': None,
        'print_summary': True,
        'log_level': 'INFO',
        'log_file': None,
    }

    SECTIONS = ('metadata', 'input_files', 'output', 'logging')

    @staticmethod
    def load_yaml_config(config_path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a YAML configuration file and flatten the nested structure.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            Flattened configuration dictionary with defaults filled in and
            relative input and output paths resolved against the config file directory
        """
        config_path = Path(config_path)

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        if not config_path.suffix.lower() in ['.yaml', '.yml']:
            raise ValueError(f"Expected YAML file, got: {config_path.suffix}")

        with open(config_path, 'r') as f:
            nested_config = yaml.safe_load(f) or {}

        if not isinstance(nested_config, dict):
            raise ValueError(f"Configuration root must be a mapping, got {type(nested_config).__name__}")

        flat_config = ConfigLoader._flatten_config(nested_config)
        flat_config = ConfigLoader._convert_values(flat_config)
        flat_config = ConfigLoader._resolve_paths(flat_config, config_path.parent)

        ConfigLoader._validate_config(flat_config)

        return flat_config

    @staticmethod
    def _flatten_config(nested_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Flatten the organized YAML structure to flat keys.

        Maps:
        - metadata.instance_name -> instance_name
        - input_files.* -> direct keys (smps_core_file, etc.)
        - output.* -> direct keys (sof_file, hdf5_file, print_summary)
        - logging.* -> direct keys (log_level, log_file)
        """
        flat = dict(ConfigLoader.DEFAULTS)

        for section in ConfigLoader.SECTIONS:
            values = nested_config.get(section)
            if values is None:
                continue
            if not isinstance(values, dict):
                raise ValueError(f"Section '{section}' must be a mapping")
            for key, value in values.items():
                flat[key] = value

        unknown = set(nested_config) - set(ConfigLoader.SECTIONS)
        if unknown:
            raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")

        return flat

    @staticmethod
    def _convert_values(config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Convert configuration values to their expected types.

        Args:
            config: Flattened configuration dictionary

        Returns:
            Configuration dictionary with values properly typed
        """
        converted_config = config.copy()

        for param in ('instance_name', 'smps_base_name', 'smps_core_file', 'smps_time_file', 'smps_sto_file'):
            value = converted_config.get(param)
            converted_config[param] = '' if value is None else str(value)

        value = converted_config.get('print_summary')
        if isinstance(value, str):
            if value.lower() not in ('true', 'false', 'yes', 'no'):
                raise ValueError(f"Could not convert parameter 'print_summary' with value '{value}' to bool")
            converted_config['print_summary'] = value.lower() in ('true', 'yes')
        else:
            converted_config['print_summary'] = bool(value)

        level = str(converted_config.get('log_level', 'INFO')).upper()
        if level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"Invalid log_level: {level}")
        converted_config['log_level'] = level

        return converted_config

    @staticmethod
    def _resolve_paths(config: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
        """Expand smps_base_name and make relative input and output paths relative to the config file."""
        resolved = config.copy()
        base = resolved['smps_base_name']
        for param, extension in (('smps_core_file', 'cor'), ('smps_time_file', 'tim'), ('smps_sto_file', 'sto')):
            if not resolved[param] and base:
                resolved[param] = f"{base}.{extension}"
            if resolved[param] and not os.path.isabs(resolved[param]):
                resolved[param] = str(base_dir / resolved[param])
        for param in ('sof_file', 'hdf5_file', 'log_file'):
            if resolved[param] and not os.path.isabs(str(resolved[param])):
                resolved[param] = str(base_dir / str(resolved[param]))
        return resolved

    @staticmethod
    def _validate_config(config: Dict[str, Any]) -> None:
        """
        Validate that required configuration parameters are present.

        Args:
            config: Flattened configuration dictionary

        Raises:
            ValueError: If required parameters are missing
        """
        file_params = ['smps_core_file', 'smps_time_file', 'smps_sto_file']

        missing_params = [param for param in file_params if not config.get(param)]

        if missing_params:
            raise ValueError(f"Missing required configuration parameters: {sorted(missing_params)} "
                             f"(give 'smps_base_name' or all three input files)")

        # Validate file paths exist
        for param in file_params:
            file_path = Path(config[param])
            if not file_path.exists():
                raise FileNotFoundError(f"File specified in '{param}' does not exist: {file_path}")
