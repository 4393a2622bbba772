import json
from typing import Self
import logging
import os
import yaml


Log = logging.getLogger(__name__)


class ConfigError(Exception):
    pass


class Config(object):
    '''
    When instantiated directly, contains the default configuration.

    When instantiated with the fromJSON method, contains the configuration stored in the JSON file at the given file path.

    Plugins describe their options with a specification dictionary :
        { "optionName" : { "required" : bool, "default" : any, "description" : str } }
    which FromSpecification uses to fill defaults and reject missing required options.
    '''
    def __init__(self, data = None):
        if data == None:
            self.cfg = {}
        else:
            self.cfg = data

    @classmethod
    def fromJSON(cls, jsonPath, default : str = None):
        return JsonConfig.from_file(jsonPath, default)

    @classmethod
    def from_file(cls, path, default : str = None):
        ext = os.path.splitext(path)[1].lower()
        if ext == ".yaml" or ext == ".yml":
            return YamlConfig.from_file(path, default)
        else:
            return JsonConfig.from_file(path, default)

    @classmethod
    def FromSpecification(cls, specification : dict, values : dict) -> Self:
        """
        Builds a config from raw option values and an options specification.

        :raises ConfigError: when a required option is absent or empty
        """
        if values == None:
            values = {}
        result = {}
        missing = []
        for name, option in specification.items():
            if name in values and values[name] not in (None, ""):
                result[name] = values[name]
            elif option.get("required", False):
                missing.append(name)
            else:
                result[name] = option.get("default", None)
        if len(missing) > 0:
            raise ConfigError("Missing required options : %s" % ", ".join(missing))
        # unknown keys are kept so plugins can read extras
        for name in values:
            if name not in result:
                Log.debug("Option '%s' is not part of the specification, keeping it as is", name)
                result[name] = values[name]
        return cls(result)

    def GetValue(self, paramName : str, defaultValue : any):
        if paramName in self.cfg:
            Log.debug(f"Retrieved config value for '{paramName}': {self.cfg[paramName]}")
            return self.cfg[paramName]
        else:
            Log.debug(f"Config parameter '{paramName}' not found, using default value: {defaultValue}")
            return defaultValue

    def __getitem__(self, key):
        return self.cfg[key]

    def __contains__(self, key):
        return key in self.cfg


def _WriteDefault(path : str, default : str):
    with open(path, "wt") as f:
        f.write(default)
    Log.info(f"Default config file created: {path}")


class JsonConfig(Config):
    @classmethod
    def from_file(cls, jsonPath, default : str = None):
        try:
            Log.debug(f"Attempting to load config from: {jsonPath}")
            with open(jsonPath) as file:
                config = json.load(file)
                Log.info(f"Successfully loaded config from: {jsonPath}")
                return cls(config)
        except FileNotFoundError:
            Log.warning(f"Config file not found: {jsonPath}")
            if default == None:
                return None
            instance = cls.from_string(default)
            _WriteDefault(jsonPath, default)
            return instance
        except json.JSONDecodeError as e:
            Log.error(f"Invalid JSON in config file {jsonPath}: {e}")
            # the broken file is left for the operator to fix
            if default == None:
                return None
            Log.info(f"Using default config due to JSON error in: {jsonPath}")
            return cls.from_string(default)

    @classmethod
    def from_string(cls, target : str) -> Self:
        if target != None:
            try:
                config = json.loads(target)
                return cls(config)
            except json.JSONDecodeError as e:
                Log.error(f"Invalid JSON string provided: {e}")
                return None
        Log.warning("Attempted to create config from None JSON string")
        return None


class YamlConfig(Config):
    @classmethod
    def from_file(cls, yamlPath, default : str = None):
        try:
            Log.debug(f"Attempting to load config from: {yamlPath}")
            with open(yamlPath) as file:
                config = yaml.safe_load(file)
                if config == None:
                    config = {}
                Log.info(f"Successfully loaded config from: {yamlPath}")
                return cls(config)
        except FileNotFoundError:
            Log.warning(f"Config file not found: {yamlPath}")
            if default == None:
                return None
            instance = cls.from_string(default)
            _WriteDefault(yamlPath, default)
            return instance
        except yaml.YAMLError as e:
            Log.error(f"Invalid YAML in config file {yamlPath}: {e}")
            if default == None:
                return None
            return cls.from_string(default)

    @classmethod
    def from_string(cls, target : str) -> Self:
        if target != None:
            try:
                config = yaml.safe_load(target)
                if config == None:
                    config = {}
                return cls(config)
            except yaml.YAMLError as e:
                Log.error(f"Error creating config from YAML string: {e}")
                return None
        Log.warning("Attempted to create config from None YAML string")
        return None
