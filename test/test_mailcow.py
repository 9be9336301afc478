#!/usr/bin/env python3
# -*- coding: utf-8 -*-
# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

# To be run as: python3 -m pytest test/test_mailcow.py
# Each test runs a throwaway aiohttp server that pretends to be the mailcow API

import asyncio

import aiohttp.test_utils
import aiohttp.web

import plugins.configuration
import plugins.mailcow

API_KEY = "test-api-key"

ALIASES = [
    {"address": "A@x.com", "goto": "m@x.com", "active_int": 1},
    {"address": "b@x.com", "goto": " a@x.com ,other@y.org", "active": 1, "active_int": 1},
    {"address": "old@x.com", "goto": "m@x.com", "active_int": 0},
    {"address": "older@x.com", "goto": "m@x.com", "active": 0},
    {"address": "@x.com", "goto": "m@x.com"},
    {"address": "broken@x.com"},
    "not an alias at all",
]


def run_with_api(routes: dict, func, timeout: float = 5):
    """Serves the given GET routes locally and runs func(config) against them"""
    async def runner():
        app = aiohttp.web.Application()
        for path, handler in routes.items():
            app.router.add_get(path, handler)
        async with aiohttp.test_utils.TestServer(app) as srv:
            config = plugins.configuration.MailcowConfig(
                {"api_key": API_KEY, "host": "%s:%d" % (srv.host, srv.port), "scheme": "http", "timeout": timeout},
                plugins.configuration.ImapConfig({}),
            )
            return await func(config)
    return asyncio.run(runner())


def json_handler(payload, seen=None, status: int = 200):
    async def handler(request: aiohttp.web.Request):
        if seen is not None:
            seen.append(request)
        return aiohttp.web.json_response(payload, status=status)
    return handler


def test_get_active_aliases():
    seen: list = []
    aliases = run_with_api({"/api/v1/get/alias/all": json_handler(ALIASES, seen)}, plugins.mailcow.get_active_aliases)
    assert 1 == len(seen)
    assert API_KEY == seen[0].headers["X-API-Key"]
    assert "application/json" == seen[0].headers["Accept"]
    assert ["a@x.com", "b@x.com", "@x.com"] == [alias.address for alias in aliases]
    assert frozenset({"a@x.com", "other@y.org"}) == aliases[1].destinations


def test_get_active_aliases_not_a_list():
    routes = {"/api/v1/get/alias/all": json_handler({"type": "error", "msg": "api access denied"})}
    assert [] == run_with_api(routes, plugins.mailcow.get_active_aliases)


def test_get_active_aliases_server_error():
    routes = {"/api/v1/get/alias/all": json_handler([], status=500)}
    assert [] == run_with_api(routes, plugins.mailcow.get_active_aliases)


def test_get_active_aliases_bad_json():
    async def handler(_request):
        return aiohttp.web.Response(text="<html>login</html>", content_type="text/html")
    assert [] == run_with_api({"/api/v1/get/alias/all": handler}, plugins.mailcow.get_active_aliases)


def test_get_active_aliases_timeout():
    async def handler(_request):
        await asyncio.sleep(0.5)
        return aiohttp.web.json_response(ALIASES)
    routes = {"/api/v1/get/alias/all": handler}
    assert [] == run_with_api(routes, plugins.mailcow.get_active_aliases, timeout=0.1)


def test_get_active_aliases_unreachable():
    config = plugins.configuration.MailcowConfig(
        {"api_key": API_KEY, "host": "127.0.0.1:1", "scheme": "http", "timeout": 1},
        plugins.configuration.ImapConfig({}),
    )
    assert [] == asyncio.run(plugins.mailcow.get_active_aliases(config))


def test_get_mailbox_realname():
    seen: list = []

    async def handler(request: aiohttp.web.Request):
        seen.append(request.match_info["mailbox"])
        return aiohttp.web.json_response({"username": "m@x.com", "name": "  Mary Major "})

    async def lookup(config):
        return await plugins.mailcow.get_mailbox_realname(config, "m@x.com")

    assert "Mary Major" == run_with_api({"/api/v1/get/mailbox/{mailbox}": handler}, lookup)
    assert ["m@x.com"] == seen


def test_get_mailbox_realname_missing():
    async def lookup(config):
        return await plugins.mailcow.get_mailbox_realname(config, "m@x.com")

    for payload in ({"name": "   "}, {"username": "m@x.com"}, {}, [], {"name": None}):
        assert run_with_api({"/api/v1/get/mailbox/{mailbox}": json_handler(payload)}, lookup) is None
    assert run_with_api({"/api/v1/get/mailbox/{mailbox}": json_handler({}, status=404)}, lookup) is None


def test_get_mailbox_realname_empty_mailbox():
    seen: list = []

    async def lookup(config):
        return await plugins.mailcow.get_mailbox_realname(config, "")

    assert run_with_api({"/api/v1/get/mailbox/{mailbox}": json_handler({"name": "x"}, seen)}, lookup) is None
    assert [] == seen
