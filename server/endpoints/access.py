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

"""Archive access endpoint: shows what the logged in user may read, checks single addresses, and handles logout"""

import typing

import aiohttp.web

import plugins.aaa
import plugins.server
import plugins.session


async def process(
    server: plugins.server.BaseServer, session: plugins.session.SessionObject, indata: dict
) -> typing.Union[dict, aiohttp.web.Response]:

    # Logging out??
    if indata.get("logout"):
        plugins.session.remove_session(server, session)
        return aiohttp.web.Response(
            headers={
                "set-cookie": "%s=deleted; path=/api; expires=Thu, 01 Jan 1970 00:00:00 GMT"
                % plugins.session.COOKIE_NAME,
                "content-type": "application/json",
            },
            status=200,
            text='{"okay": true}',
        )

    access: dict = {"version": server.version, "login": {}}
    auth_data = session.auth_data
    if auth_data:
        access["login"] = auth_data.as_dict()
        access["wildcard_domains"] = sorted(session.wildcard_domains)
    # Optional check of a single address, e.g. /api/access?address=sales@example.org
    address = indata.get("address")
    if address:
        access["address"] = {"address": address, "can_access": plugins.aaa.can_access_address(session, address)}
    return access


def register(server: plugins.server.BaseServer):
    return plugins.server.Endpoint(process)
