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

"""This is the user session handler for the archive access server"""

import http.cookies
import time
import typing
import uuid

import aiohttp.web

import plugins.server

MAX_SESSION_AGE = 86400 * 7  # Max 1 week between visits before voiding a session
COOKIE_NAME = "archiveaccess"


class AuthData:
    """What a logged in user may read: their own addresses, plus whatever the login hook added"""

    username: str
    emails: typing.Set[str]
    realname: typing.Optional[str]

    def __init__(self, username: str, emails: typing.Iterable[str] = (), realname: typing.Optional[str] = None):
        self.username = username
        self.emails = set(emails)
        self.realname = realname

    def as_dict(self) -> dict:
        return {
            "username": self.username,
            "emails": sorted(self.emails),
            "realname": self.realname,
        }


class SessionObject:
    cookie: str
    created: int
    last_accessed: int
    data: dict
    remote: str
    host: str

    def __init__(self, cookie: typing.Optional[str] = None):
        self.created = int(time.time())
        self.last_accessed = self.created
        self.cookie = cookie or str(uuid.uuid4())
        self.data = {}
        self.host = "??"
        self.remote = "??"

    def get(self, key: str, default: typing.Any = None) -> typing.Any:
        return self.data.get(key, default)

    def set(self, key: str, value: typing.Any):
        self.data[key] = value

    @property
    def auth_data(self) -> typing.Optional[AuthData]:
        return self.data.get("auth_data")

    @property
    def wildcard_domains(self) -> typing.Set[str]:
        return self.data.get("wildcard_domains") or set()


def get_session(server: plugins.server.BaseServer, request: aiohttp.web.BaseRequest) -> SessionObject:
    session_id = None
    now = int(time.time())
    if request.headers.get("cookie"):
        for cookie_header in request.headers.getall("cookie"):
            cookies: http.cookies.SimpleCookie = http.cookies.SimpleCookie(cookie_header)
            if COOKIE_NAME in cookies:
                session_id = cookies[COOKIE_NAME].value
                if not all(c in "abcdef1234567890-" for c in session_id):
                    session_id = None
                break

    if session_id and session_id in server.data.sessions:
        session = server.data.sessions[session_id]
        if (now - session.last_accessed) > MAX_SESSION_AGE:
            del server.data.sessions[session_id]
        else:
            session.last_accessed = now
            session.host = request.headers.get("X-Forwarded-Host", request.host)
            session.remote = request.remote or "??"
            return session

    # Unknown or expired cookie, start a fresh anonymous session
    session = SessionObject()
    session.host = request.headers.get("X-Forwarded-Host", request.host or "??")
    session.remote = request.remote or "??"
    return session


def set_session(server: plugins.server.BaseServer, session: SessionObject) -> str:
    """Stores a (logged in) session in memory and returns the set-cookie value for it"""
    cookie: http.cookies.SimpleCookie = http.cookies.SimpleCookie()
    cookie[COOKIE_NAME] = session.cookie
    cookie[COOKIE_NAME]["path"] = "/api"
    cookie[COOKIE_NAME]["httponly"] = True
    server.data.sessions[session.cookie] = session
    return cookie[COOKIE_NAME].OutputString()


def remove_session(server: plugins.server.BaseServer, session: SessionObject):
    if session.cookie in server.data.sessions:
        del server.data.sessions[session.cookie]
    session.data = {}
