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

"""
Custom email queries, run right after a user has logged in.
A query gets the configuration, the freshly created session and the username,
and may widen the set of addresses the user can read archived mail for.
Which query runs is picked by name in archiveaccess.yaml:

auth:
  custom_email_query: query_mailcow_for_email_access
"""

import logging
import typing

import plugins.aliases
import plugins.configuration
import plugins.mailcow
import plugins.server
import plugins.session

logger = logging.getLogger("mailcow")

EmailQuery = typing.Callable[
    [plugins.configuration.Configuration, plugins.session.SessionObject, str], typing.Awaitable[None]
]
EMAIL_QUERIES: typing.Dict[str, EmailQuery] = {}


def email_query(func: EmailQuery) -> EmailQuery:
    """Registers a custom email query under its function name"""
    EMAIL_QUERIES[func.__name__] = func
    return func


def get_email_query(name: str) -> EmailQuery:
    if name not in EMAIL_QUERIES:
        raise KeyError("Unknown custom email query '%s', known queries: %s" % (name, ", ".join(sorted(EMAIL_QUERIES))))
    return EMAIL_QUERIES[name]


def check_config(config: plugins.configuration.Configuration):
    """Fails early if the configured email query is unknown or cannot work with the given settings"""
    name = config.auth.custom_email_query
    if not name:
        return
    get_email_query(name)
    if name == query_mailcow_for_email_access.__name__:
        config.mailcow.validate()


async def run_email_query(
    server: plugins.server.BaseServer, session: plugins.session.SessionObject, username: str
) -> None:
    name = server.config.auth.custom_email_query
    if name:
        await get_email_query(name)(server.config, session, username)


def project(
    session: plugins.session.SessionObject,
    auth_data: plugins.session.AuthData,
    addresses: typing.Iterable[str],
    wildcard_domains: typing.Iterable[str],
    realname: typing.Optional[str] = None,
) -> plugins.session.AuthData:
    """Merges resolved addresses into the user's auth data and stores the result in the session"""
    updated = plugins.session.AuthData(
        auth_data.username,
        auth_data.emails | set(addresses),
        realname if realname is not None else auth_data.realname,
    )
    # Always set, even if empty, so a stale list from an earlier login never lingers
    session.set("wildcard_domains", set(wildcard_domains))
    session.set("auth_data", updated)
    return updated


@email_query
async def query_mailcow_for_email_access(
    config: plugins.configuration.Configuration, session: plugins.session.SessionObject, username: str
) -> None:
    """Grants access to every alias and wildcard domain in mailcow that delivers to the user's mailbox"""
    auth_data = session.get("auth_data")
    # Local accounts (e.g. admin@local) carry no auth data, nothing to do for them
    if not auth_data or not username:
        return

    aliases = await plugins.mailcow.get_active_aliases(config.mailcow)
    mailbox = username.strip().lower()
    result = plugins.aliases.resolve(mailbox, aliases)
    realname = None
    if config.mailcow.set_realname:
        realname = await plugins.mailcow.get_mailbox_realname(config.mailcow, mailbox)

    logger.info(
        "Login of %s: %d aliases, %d wildcard domains from %d active mailcow aliases",
        username, len(result.addresses), len(result.wildcard_domains), len(aliases),
    )
    project(session, auth_data, result.addresses, result.wildcard_domains, realname)
