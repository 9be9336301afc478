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
    Simple endpoint that does a local login, without checking any credentials

To enable, start the server with --testendpoints, then:
    curl -c cookies -d username=user@example.org http://localhost:8080/api/testauth
    curl -b cookies http://localhost:8080/api/access

The login runs the configured custom email query, just like a real login would,
so this is a handy way to check what a mailbox will get to see.
A username without an @ is treated as a local account and gets no email query data.
"""

import typing

import aiohttp.web

import plugins.emailquery
import plugins.server
import plugins.session


async def process(
    server: plugins.server.BaseServer, _session: plugins.session.SessionObject, indata: dict
) -> typing.Union[aiohttp.web.Response, dict]:
    username = str(indata.get("username", "")).strip().lower()
    if not username:
        return {"okay": False, "message": "Invalid invocation!"}

    session = plugins.session.SessionObject()
    if "@" in username:
        email = str(indata.get("email") or username).strip().lower()
        session.set("auth_data", plugins.session.AuthData(username, [email]))
    await plugins.emailquery.run_email_query(server, session, username)
    cookie = plugins.session.set_session(server, session)
    return aiohttp.web.Response(
        headers={"set-cookie": cookie, "content-type": "application/json"}, status=200, text='{"okay": true}',
    )


def register(server: plugins.server.BaseServer):
    return plugins.server.Endpoint(process)
