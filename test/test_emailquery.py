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

# To be run as: python3 -m pytest test/test_emailquery.py

import asyncio

import pytest

import plugins.configuration
import plugins.emailquery
import plugins.mailcow
import plugins.session
from plugins.aliases import AliasRecord

ALIASES = [
    AliasRecord("a@x.com", ["m@x.com"]),
    AliasRecord("b@x.com", ["a@x.com"]),
    AliasRecord("@x.com", ["m@x.com"]),
    AliasRecord("c@x.com", ["someone@y.org"]),
]


def make_config(set_realname: bool = False) -> plugins.configuration.Configuration:
    return plugins.configuration.Configuration({
        "imap": {"host": "mail.x.com"},
        "mailcow": {"api_key": "key", "set_realname": set_realname},
        "auth": {"custom_email_query": "query_mailcow_for_email_access"},
    })


@pytest.fixture
def api_calls(monkeypatch):
    calls: list = []

    async def get_active_aliases(config):
        calls.append(("aliases", config.host))
        return list(ALIASES)

    async def get_mailbox_realname(config, mailbox):
        calls.append(("realname", mailbox))
        return "Mary Major"

    monkeypatch.setattr(plugins.mailcow, "get_active_aliases", get_active_aliases)
    monkeypatch.setattr(plugins.mailcow, "get_mailbox_realname", get_mailbox_realname)
    return calls


def logged_in_session(username: str) -> plugins.session.SessionObject:
    session = plugins.session.SessionObject()
    session.set("auth_data", plugins.session.AuthData(username, [username], realname="m"))
    return session


def test_project():
    session = plugins.session.SessionObject()
    auth_data = plugins.session.AuthData("m@x.com", ["m@x.com", "a@x.com"], realname="old")
    updated = plugins.emailquery.project(session, auth_data, {"a@x.com", "b@x.com"}, set())
    assert {"m@x.com", "a@x.com", "b@x.com"} == updated.emails
    assert "old" == updated.realname
    assert updated is session.auth_data
    assert set() == session.get("wildcard_domains")

    updated = plugins.emailquery.project(session, updated, [], ["x.com"], realname="New Name")
    assert "New Name" == updated.realname
    assert {"x.com"} == session.wildcard_domains


def test_query_mailcow(api_calls):
    session = logged_in_session("m@x.com")
    asyncio.run(plugins.emailquery.query_mailcow_for_email_access(make_config(), session, "m@x.com"))
    assert [("aliases", "mail.x.com")] == api_calls
    assert {"m@x.com", "a@x.com", "b@x.com"} == session.auth_data.emails
    assert "m" == session.auth_data.realname
    assert {"x.com"} == session.get("wildcard_domains")


def test_query_mailcow_realname(api_calls):
    session = logged_in_session("m@x.com")
    asyncio.run(plugins.emailquery.query_mailcow_for_email_access(make_config(True), session, " M@x.com "))
    assert [("aliases", "mail.x.com"), ("realname", "m@x.com")] == api_calls
    assert "Mary Major" == session.auth_data.realname
    assert {"m@x.com", "a@x.com", "b@x.com"} == session.auth_data.emails


def test_query_mailcow_no_grants(api_calls):
    session = logged_in_session("nobody@z.net")
    session.set("wildcard_domains", {"stale.org"})
    asyncio.run(plugins.emailquery.query_mailcow_for_email_access(make_config(), session, "nobody@z.net"))
    assert {"nobody@z.net"} == session.auth_data.emails
    # Always overwritten, even when nothing matched
    assert set() == session.get("wildcard_domains")


def test_query_mailcow_local_accounts(api_calls):
    # No auth data: local account, no API calls and nothing touched
    session = plugins.session.SessionObject()
    asyncio.run(plugins.emailquery.query_mailcow_for_email_access(make_config(True), session, "admin@local"))
    assert {} == session.data

    # Empty username
    session = logged_in_session("m@x.com")
    before = dict(session.data)
    asyncio.run(plugins.emailquery.query_mailcow_for_email_access(make_config(True), session, ""))
    assert before == session.data
    assert [] == api_calls


def test_query_mailcow_api_down(monkeypatch):
    async def get_active_aliases(config):
        return []

    async def get_mailbox_realname(config, mailbox):
        return None

    monkeypatch.setattr(plugins.mailcow, "get_active_aliases", get_active_aliases)
    monkeypatch.setattr(plugins.mailcow, "get_mailbox_realname", get_mailbox_realname)
    session = logged_in_session("m@x.com")
    asyncio.run(plugins.emailquery.query_mailcow_for_email_access(make_config(True), session, "m@x.com"))
    assert {"m@x.com"} == session.auth_data.emails
    assert "m" == session.auth_data.realname
    assert set() == session.wildcard_domains


def test_registry():
    query = plugins.emailquery.get_email_query("query_mailcow_for_email_access")
    assert query is plugins.emailquery.query_mailcow_for_email_access
    with pytest.raises(KeyError) as excinfo:
        plugins.emailquery.get_email_query("query_ldap")
    assert "query_ldap" in str(excinfo.value)


def test_check_config():
    plugins.emailquery.check_config(make_config())
    plugins.emailquery.check_config(plugins.configuration.Configuration({}))
    with pytest.raises(ValueError) as excinfo:
        plugins.emailquery.check_config(plugins.configuration.Configuration({
            "imap": {"host": "mail.x.com"},
            "auth": {"custom_email_query": "query_mailcow_for_email_access"},
        }))
    assert "api_key" in str(excinfo.value)
    with pytest.raises(KeyError):
        plugins.emailquery.check_config(plugins.configuration.Configuration({
            "auth": {"custom_email_query": "no_such_query"},
        }))
