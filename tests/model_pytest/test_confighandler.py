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
# pylint: disable=C0103,C0111,W0613,W0621

import pytest
import os
import yaml
import logging
logger = logging.getLogger(__name__)


### System under test: ###
from highpack.model.confighandler import ConfigHandler

## Test doubles:
from highpack.model.model_testdoubles.fake_confighandler import FakeConfighandler


@pytest.fixture
def configfiles(tmpdir):
    systemfn = tmpdir.join('system.yml')
    userfn = tmpdir.join('user', 'config.yml')
    systemfn.write("""
highrise_serverparams:
  server: acme
  scheme: https
backpack_token: system_token
key_in_all_configs: system
""")
    userfn.write("""
highrise_token: user_token
key_in_all_configs: user
""", ensure=True)
    return str(systemfn), str(userfn)

@pytest.fixture
def confighandler1(configfiles):
    systemfn, userfn = configfiles
    ch = ConfigHandler(systemconfigfn=systemfn, userconfigfn=userfn)
    ch.autoRead()
    return ch


def test_autoRead_layers_configs(confighandler1):
    ch = confighandler1
    assert ch.get('highrise_serverparams') == {'server': 'acme', 'scheme': 'https'}
    assert ch.get('highrise_token') == 'user_token'
    assert ch.get('backpack_token') == 'system_token'
    # user config is loaded after system config:
    assert ch.get('key_in_all_configs') == 'user'
    assert ch.get('non_existing_key') is None
    assert ch.get('non_existing_key', 'default') == 'default'


def test_autoRead_missing_files(tmpdir):
    ch = ConfigHandler(systemconfigfn=str(tmpdir.join('nope.yml')), userconfigfn=None)
    ch.autoRead()
    assert ch.getConfig('combined') == {}
    assert ch.ReadFiles == set()


def test_readConfig_unreadable(tmpdir):
    ch = ConfigHandler()
    assert ch.readConfig(str(tmpdir.join('nope.yml'))) is False


def test_setkey(confighandler1):
    ch = confighandler1
    # existing key is updated where it is found:
    assert ch.setkey('backpack_token', 'new_token') == 'system'
    assert ch.get('backpack_token') == 'new_token'
    # new keys go to the default config:
    assert ch.setkey('backpack_serverparams', {'server': 'acme'}) == 'user'
    assert ch.getConfig('user')['backpack_serverparams'] == {'server': 'acme'}
    assert 'backpack_serverparams' in ch.ChangedEntriesForCallbacks


def test_setdefault(confighandler1):
    ch = confighandler1
    assert ch.setdefault('highrise_token', 'other') == 'user_token'
    assert ch.setdefault('new_key', 'value') == 'value'
    assert ch.get('new_key') == 'value'


def test_popkey(confighandler1):
    ch = confighandler1
    assert ch.popkey('key_in_all_configs') == ('system', 'system')
    assert ch.get('key_in_all_configs') == 'user'
    assert ch.popkey('highrise_token', cfgtype='user') == ('user_token', 'user')
    assert ch.get('highrise_token') is None


def test_saveConfigs(confighandler1, configfiles):
    ch = confighandler1
    _, userfn = configfiles
    ch.setkey('backpack_serverparams', {'server': 'acme'})
    ch.saveConfigs('user')
    with open(userfn) as fd:
        saved = yaml.safe_load(fd)
    assert saved['backpack_serverparams'] == {'server': 'acme'}
    assert saved['highrise_token'] == 'user_token'
    assert 'backpack_token' not in saved


def test_saveConfig_creates_directory(tmpdir):
    userfn = str(tmpdir.join('new', 'dir', 'config.yml'))
    ch = ConfigHandler(userconfigfn=userfn)
    ch.setkey('highrise_token', 'abc')
    assert ch.saveConfig('user') is True
    assert os.path.exists(userfn)
    assert ch.saveConfig('nonexisting') is False


def test_addNewConfig(confighandler1, tmpdir):
    ch = confighandler1
    fn = tmpdir.join('extra.yml')
    fn.write("key_in_all_configs: extra\n")
    ch.addNewConfig(str(fn), 'extra')
    assert ch.get('key_in_all_configs') == 'extra'
    assert ch.getConfigPath('extra') == str(fn)
    # not allowed to overwrite an existing config type:
    ch.addNewConfig(str(fn), 'user')
    assert ch.getConfig('user')['key_in_all_configs'] == 'user'


def test_singletons():
    ch = ConfigHandler()
    assert ch.getSingleton('highrise') is None
    client = object()
    ch.setSingleton('highrise', client)
    assert ch.getSingleton('highrise') is client


def test_printConfigs(confighandler1):
    out = confighandler1.printConfigs()
    assert "Config 'user'" in out
    assert "highrise_token: user_token" in out


def test_registerEntryChangeCallback():
    ch = ConfigHandler()
    calls = []
    def record(*args, **kwargs):
        calls.append((args, kwargs))
    ch.registerEntryChangeCallback('highrise_server_status', record, ('highrise', ))
    ch.registerEntryChangeCallback('backpack_token', record, ('word', 'up'), dict(hej='tjubang'))
    ch.setkey('backpack_token', 'abc')

    ch.invokeEntryChangeCallback('highrise_server_status')
    assert calls == [(('highrise', ), {})]
    ch.invokeEntryChangeCallback() # invokes callbacks for changed entries
    assert calls[-1] == (('word', 'up'), dict(hej='tjubang'))
    assert len(calls) == 2
    ch.invokeEntryChangeCallback() # does not invoke anything...
    assert len(calls) == 2


def test_fakeconfighandler():
    ch = FakeConfighandler()
    assert ch.get('highrise_token') == 'fake_highrise_token'
    assert ch.get('backpack_serverparams') == {'server': 'fake', 'scheme': 'https'}
    assert ch.setkey('backpack_token', 'other') == 'user'
    assert ch.saveConfig('user') is True
