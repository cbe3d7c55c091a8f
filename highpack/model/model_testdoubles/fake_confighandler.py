#!/usr/bin/env python
# -*- coding: utf-8 -*-
##    Copyright 2013-2014 Rasmus Scholer Sorensen, rasmusscholer@gmail.com
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
# pylint: disable=C0111,W0613
"""
fake_confighandler module, provides Fake Confighandler class, used in test cases.
Nothing is read from or written to disk.
"""

import yaml
import logging
logger = logging.getLogger(__name__)

from ..confighandler import ConfigHandler


class FakeConfighandler(ConfigHandler):
    """
    Fake Confighandler class, used in test cases.
    Has server params and tokens for a 'fake' account on both services.
    """
    def __init__(self, systemconfigfn=None, userconfigfn=None):
        ConfigHandler.__init__(self, systemconfigfn=None, userconfigfn=None)

        systemconfigyaml = """
highrise_serverparams:
  domain: highrisehq.com
  scheme: https
backpack_serverparams:
  domain: backpackit.com
  scheme: https
  urlpostfix: /ws
"""
        userconfigyaml = """
highrise_serverparams:
  server: fake
  scheme: https
highrise_token: fake_highrise_token
backpack_serverparams:
  server: fake
  scheme: https
backpack_token: fake_backpack_token
"""
        configyamls = dict(system=systemconfigyaml, user=userconfigyaml)
        for cfg, yml in configyamls.items():
            newconfig = yaml.safe_load(yml)
            self.Configs.setdefault(cfg, dict()).update(newconfig)
            logger.debug("Config '%s' loaded.", cfg)

    def autoRead(self):
        pass

    def readConfig(self, inputfn, cfgtype='user'):
        pass

    def _saveConfig(self, outputfn, config):
        return True

    def saveConfigs(self, what='all'):
        pass
