#!/usr/bin/env python
# -*- coding: utf-8 -*-
##    Copyright 2013 Rasmus Scholer Sorensen, rasmusscholer@gmail.com
##
##    This program is free software: you can redistribute it and/or modify
##    it under the terms of the GNU General Public License as published by
##    the Free Software Foundation, either version 3 of the License, or
##    (at your option) any later version.
##
##    This program is distributed in the hope that it will be useful,
##    but WITHOUT ANY WARRANTY; without even the implied warranty of
##    MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
##    GNU General Public License for more details.
##
##    You should have received a copy of the GNU General Public License
##
# pylint: disable-msg=C0103,C0301,R0902,R0201,W0142,R0913,R0904
# messages:
#   C0301: Line too long (max 80), R0902: Too many instance attributes (includes dict())
#   R0201: Method could be a function; W0142: Used * or ** magic
#   R0904: Too many public methods (20 max); R0913: Too many arguments;
"""
Confighandler module includes all logic to read, parse and save config.

Configs are plain yaml files. Two configs are loaded by default:
* 'system' : /etc/highpack/config.yml
* 'user'   : ~/.highpack/config.yml
Entries in configs loaded later override entries in configs loaded earlier,
i.e. the user config takes precedence over the system config.

The service clients look up their settings through the confighandler, e.g.
    highrise_serverparams: {server: acme, scheme: https}
    highrise_token: 605b32dd
    backpack_serverparams: {server: acme}
    backpack_token: 2f3d7f2e
"""

import os
from collections import OrderedDict
import yaml
import logging
logger = logging.getLogger(__name__)


DEFAULT_SYSTEM_CONFIG = os.path.join(os.sep, 'etc', 'highpack', 'config.yml')
DEFAULT_USER_CONFIG = os.path.join(os.path.expanduser('~'), '.highpack', 'config.yml')


class ConfigHandler(object):
    """
    Holds the loaded configs, in the order they are layered (later configs win).
    Each config is a flat dict of entries; an entry value can itself be a dict,
    as the <service>_serverparams entries are.

    Config files are registered in ch.ConfigPaths[cfgtype] and read by autoRead(),
    or added at runtime with ch.addNewConfig(filepath, cfgtype), which also makes
    the file available to saveConfigs() unless rememberpath=False.
    """

    def __init__(self, systemconfigfn=None, userconfigfn=None):
        self.ConfigPaths = OrderedDict()
        self.Configs = OrderedDict()
        self.ConfigPaths['system'], self.ConfigPaths['user'] = systemconfigfn, userconfigfn
        self.Configs['system'] = dict()
        self.Configs['user'] = dict()
        # dict for singleton objects; makes it easy to share e.g. the service clients
        # across objects that already have access to the confighandler.
        self.Singletons = dict()
        self.DefaultConfig = 'user' # which config to save new config items to.
        self.ReadFiles = set() # which files have been read.
        self.Autosave = False # if set to true, will automatically save a config after setkey.
        self.AllowCfgtypeOverwrite = False

        # Attributes for the callback system:
        self.EntryChangeCallbacks = dict()   # dict with: config_key : <list of callbacks>
        self.ChangedEntriesForCallbacks = set() # which config keys has been changed.
        logger.debug("ConfigPaths : %s", self.ConfigPaths)


    def getSingleton(self, key):
        """
        Return a registrered singleton by key, e.g.:
            getSingleton('highrise') -> return registrered highrise client
        """
        return self.Singletons.get(key)

    def setSingleton(self, key, value):
        """ Set application-wide singleton by key. """
        if key in self.Singletons:
            logger.info("key '%s' already in self.Singletons, overriding with new singleton object '%s'.", key, value)
        self.Singletons[key] = value


    def addNewConfig(self, inputfn, cfgtype, rememberpath=True):
        """
        Load an extra config file on top of the existing configs, e.g.:
            addNewConfig('/srv/highpack/team.yml', 'team')
        """
        if cfgtype in set(self.Configs).union(self.ConfigPaths) and not self.AllowCfgtypeOverwrite:
            logger.warning("Config type '%s' is already loaded and AllowCfgtypeOverwrite is False; not adding %s", cfgtype, inputfn)
            return
        if rememberpath:
            self.ConfigPaths[cfgtype] = inputfn
        self.Configs[cfgtype] = dict()
        self.readConfig(inputfn, cfgtype)


    def getConfigPath(self, what='all'):
        """
        Get the path for a particular config:
            getConfigPath('all') -> returns list of all config paths.
            getConfigPath('user') -> return self.ConfigPaths['user']
        """
        if what == 'all':
            return list(self.ConfigPaths.values())
        return self.ConfigPaths.get(what, None)


    def getConfig(self, what='all'):
        """
        Returns the config for a particular config type.
        Three return behaviours:
        1) getConfig('combined') -> returns the combined, effective config for all configs.
        2) getConfig('user') -> returns the 'user' config.
        3) getConfig('all') -> returns list of all configs.
        """
        if what == 'combined':
            combined = dict()
            for config in self.Configs.values():
                combined.update(config)
            return combined
        elif what == 'all':
            return list(self.Configs.values())
        return self.Configs.get(what, None)

    def get(self, key, default=None):
        """
        Simulates the get method of a dict, returning the effective value of key.
        """
        return self.getConfig(what='combined').get(key, default)

    def setdefault(self, key, value=None, autosave=None):
        """
        Like dict.setdefault: returns the effective value of <key>,
        setting it to value in the default config if no config has it.
        """
        if autosave is None:
            autosave = self.Autosave
        for config in self.Configs.values():
            if key in config:
                return config[key]
        val = self.Configs[self.DefaultConfig].setdefault(key, value)
        self.ChangedEntriesForCallbacks.add(key)
        if autosave:
            self.saveConfig(self.DefaultConfig)
        return val

    def set(self, key, value):
        """ Alias for setkey. """
        self.setkey(key, value)

    def setkey(self, key, value, cfgtype=None, check_for_existing_entry=True, autosave=None):
        """
        Set config entry <key> to value.
        With check_for_existing_entry, an entry that already exists is updated in the
        config it was loaded from (e.g. a token from the system config stays there).
        New entries go to <cfgtype>, or to self.DefaultConfig ('user').

        Returns the cfgtype where the key was persisted, e.g. 'user'.
        """
        if autosave is None:
            autosave = self.Autosave
        if cfgtype is None:
            cfgtype = self.DefaultConfig
        if check_for_existing_entry:
            cfgtype = next((cfgtyp for cfgtyp, config in self.Configs.items() if key in config),
                           cfgtype)
        try:
            self.Configs.get(cfgtype)[key] = value
        except TypeError:
            logger.warning("TypeError when trying to set key '%s' in cfgtype '%s', self.Configs.keys(): %s",
                           key, cfgtype, list(self.Configs.keys()))
            return False
        self.ChangedEntriesForCallbacks.add(key)
        logger.debug("cfgtype:key=type(value) | %s:%s=%s", cfgtype, key, type(value))
        if autosave:
            logger.debug("Autosaving config: %s", cfgtype)
            self.saveConfig(cfgtype)
        return cfgtype

    def popkey(self, key, cfgtype=None, check_all_configs=False):
        """
        Simulates the dict.pop method; If cfgtype is specified, only tries to pop from that cfgtype.
        If check_all_configs is True, pop from all configs; otherwise stop when the first is reached.
        Returns a tuple of (value, cfgtype[, value, cfgtype, ...]).
        """
        res = ()
        if cfgtype:
            return (self.Configs[cfgtype].pop(key, None), cfgtype)
        for cfgtyp, config in self.Configs.items():
            val = config.pop(key, None)
            res = res + (val, cfgtyp)
            logger.debug("popped value '%s' from config '%s'. res is now: '%s'", val, cfgtyp, res)
            if val and not check_all_configs:
                break
        return res

    def readConfig(self, inputfn, cfgtype='user'):
        """
        Reads a (yaml-based) configuration file from inputfn, loading the
        content into the config given by cfgtype.
        Returns the newly loaded config, or False if the file could not be read.
        """
        if inputfn in self.ReadFiles:
            logger.warning("WARNING, file already read: %s", inputfn)
            return
        try:
            with open(inputfn) as fd:
                newconfig = yaml.safe_load(fd) or dict()
        except IOError as e:
            logger.warning("readConfig() :: could not load yaml config, cfgtype: %s, error: %s", cfgtype, e)
            return False
        self.ReadFiles.add(inputfn)
        self.Configs.setdefault(cfgtype, dict()).update(newconfig)
        logger.debug("readConfig() :: New '%s'-type config loaded from %s", cfgtype, inputfn)
        return newconfig


    def autoRead(self):
        """
        autoRead is used to read all config files defined in self.ConfigPaths.
        """
        logger.debug("ConfigPaths: %s", list(self.ConfigPaths.items()))
        for cfgtype, inputfn in self.ConfigPaths.items():
            if inputfn and os.path.exists(inputfn):
                self.readConfig(inputfn, cfgtype)
            else:
                logger.debug("Config file for '%s' not found: %s", cfgtype, inputfn)

    def saveConfigs(self, what='all'):
        """
        Persist config specified by what argument.
        Use as:
            saveConfigs('all') --> save all configs (default)
            saveConfigs('user') --> save the 'user' config.
            saveConfigs(('system', 'user')) --> save the 'system' and 'user' config.
        """
        logger.info("saveConfigs invoked with configtosave '%s'", what)
        for cfgtype, outputfn in self.ConfigPaths.items():
            if what == 'all' or cfgtype == what or cfgtype in what:
                if outputfn:
                    logger.info("Saving config '%s' to file: %s", cfgtype, outputfn)
                    self._saveConfig(outputfn, self.Configs[cfgtype])
                else:
                    logger.info("No filename specified for config '%s'", cfgtype)

    def saveConfig(self, cfgtype):
        """
        Saves a particular config.
        saveConfig('user') --> save the 'user' config.
        """
        if cfgtype not in self.ConfigPaths or cfgtype not in self.Configs:
            logger.warning("cfgtype '%s' not found in self.Configs or self.ConfigPaths, aborting...", cfgtype)
            return False
        return self._saveConfig(self.ConfigPaths[cfgtype], self.Configs[cfgtype])


    def _saveConfig(self, outputfn, config):
        """
        For internal use; does the actual saving of the config.
        Can be easily mocked or overridden by fake classes to enable safe testing environments.
        """
        try:
            configdir = os.path.dirname(outputfn)
            if configdir and not os.path.isdir(configdir):
                os.makedirs(configdir)
            with open(outputfn, 'w') as fd:
                yaml.safe_dump(config, fd, default_flow_style=False)
            logger.info("Config saved to file: %s", outputfn)
            return True
        except (IOError, OSError) as e:
            # This is to be expected for the system config...
            logger.warning("Could not save config to file '%s', error raised: %s", outputfn, e)
            return False


    def printConfigs(self, cfgtypestoprint='all'):
        """
        Returns a pretty string representation of all configs specified by cfgtypestoprint.
        """
        def printConfig(config, indent=2):
            return "\n".join("{indent}{k}: {v}".format(indent=' '*indent, k=k, v=v) for k, v in config.items())
        return "\n".join("\n".join(["\nConfig '{}' in file: {}".format(cfgtype, outputfn),
                                    printConfig(self.Configs.get(cfgtype, {}))])
                         for cfgtype, outputfn in self.ConfigPaths.items()
                         if cfgtypestoprint == 'all' or cfgtype == cfgtypestoprint or cfgtype in cfgtypestoprint)


    def registerEntryChangeCallback(self, configentry, function, args=None, kwargs=None):
        """
        Registers a callback for a particular entry (name).
        The 'configentry' key does not have to correspond to an actual configentry,
        it can just be a name that specifies that particular callback by convention,
        e.g. 'highrise_server_status' which is invoked when a client's connection status changes.
        """
        if args is None:
            args = list()
        if kwargs is None:
            kwargs = dict()
        self.EntryChangeCallbacks.setdefault(configentry, list()).append((function, args, kwargs))
        logger.debug("Registrered callback for configentry '%s': %s(*%s, **%s)", configentry, function, args, kwargs)

    def invokeEntryChangeCallback(self, configentry=None):
        """
        Simple invokation of registrered callbacks.
        If configentry is provided, only callbacks registrered to that entry will be invoked.
        If configentry is None (default), all keys registrered in self.ChangedEntriesForCallbacks
        will have their corresponding callbacks invoked.
        """
        if configentry is None:
            for entry in list(self.ChangedEntriesForCallbacks):
                self.invokeEntryChangeCallback(entry)
            return
        for function, args, kwargs in self.EntryChangeCallbacks.get(configentry, ()):
            logger.debug("invoking callback for configentry '%s': %s(*%s, **%s)", configentry, function, args, kwargs)
            function(*args, **kwargs)
        self.ChangedEntriesForCallbacks.discard(configentry)
