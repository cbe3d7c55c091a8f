#!/usr/bin/env python
# -*- coding: utf-8 -*-
##    Copyright 2013-2014 Rasmus Scholer Sorensen, rasmusscholer@gmail.com
"""
The project includes the following test suites:
model_pytest:   Tests for the model: schema, clients, directory search, config and caching.
app_tests:      Tests for the highpack command line interface.

All tests run against the test doubles in highpack.model.model_testdoubles:
* FakeSession answers requests with the canned XML in testdouble_data/,
* FakeConfighandler has settings for a 'fake' account on both services.
No network access is needed.

Run with:
    py.test tests
"""
