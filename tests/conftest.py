"""Pytest configuration and project fixtures for spec-roadmap tests."""

import os
import sys
from pathlib import Path
from textwrap import dedent

import pytest

# Add the repository root to the path so the package imports without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from spec_roadmap.core.logging import clear_log_context  # noqa: E402

SPECKIT_SPEC = """\
# F001: User Accounts

**Status:** in-progress
**Priority:** P1

## Overview

Account creation and recovery for the storefront.

## Requirements

### FR1: Validate email on signup

Priority: P1

Email addresses are checked before an account is created.

**Acceptance Criteria:**
- rejects malformed addresses

### FR2: Create user account

Priority: P0

**Acceptance Criteria:**
- stores the email
- hashes the password

### FR3: Reset password

Priority: P2

Depends on: FR1

Users can request a reset link.
"""

SPECKIT_SOURCE = '''\
def create_user_account(email, password):
    """Persist a new account."""
    return {"email": email, "password": hash(password)}


def reset_password(email):
    return "TODO: Implement"
'''

BMAD_PRD = """\
# Shop Platform

## Functional Requirements

### FR1: User Login

Users sign in with their email and password.

### FR2: Export order history

Priority: P1

Customers download their past orders as CSV.

## Non-Functional Requirements

- **Performance**: Pages load in under two seconds
"""

BMAD_EPICS = """\
# Epics

## Epic 1: Account Management

Priority: P1

### Story 1.1: User Login

As a customer, I want to sign in, so that I can see my orders.

**Acceptance Criteria:**
- Given valid credentials, when I submit, then I am signed in
- Locked accounts are rejected

### Story 1.2: Password Reset

As a customer, I want to reset my password, so that I can recover my account.

Depends on: S1.1
"""

BMAD_SOURCE = """\
export function userLogin(email, password) {
  const user = findUser(email);
  return verify(user, password);
}

function findUser(email) {
  return db.users.get(email);
}
"""


def write_file(root: Path, relative: str, content: str) -> Path:
    """Write content under root, creating parent directories."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dedent(content), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def reset_log_context():
    """Correlation ids and stage context must not leak between tests."""
    clear_log_context()
    yield
    clear_log_context()


@pytest.fixture
def speckit_project(tmp_path: Path) -> Path:
    """A spec-kit project with one feature spec and a partly implemented source tree."""
    write_file(tmp_path, ".specify/memory/specifications/001-user-accounts/spec.md", SPECKIT_SPEC)
    write_file(tmp_path, "src/accounts.py", SPECKIT_SOURCE)
    return tmp_path


@pytest.fixture
def bmad_project(tmp_path: Path) -> Path:
    """A BMAD project with a PRD, an epics document and one JavaScript module."""
    write_file(tmp_path, "_bmad-output/planning-artifacts/prd.md", BMAD_PRD)
    write_file(tmp_path, "_bmad-output/planning-artifacts/epics.md", BMAD_EPICS)
    write_file(tmp_path, "src/auth.js", BMAD_SOURCE)
    return tmp_path
