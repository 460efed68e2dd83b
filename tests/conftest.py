"""Shared pytest fixtures: sample v1 components and source trees."""

from pathlib import Path
from typing import Dict

import pytest

from ui_migrator.models.migration import MigrationConfig, RetryPolicy
from ui_migrator.extractors.tsx_extractor import TSXExtractor
from ui_migrator.services.analyzer import BusinessLogicAnalyzer


# ---------------------------------------------------------------------------
# Sample v1 sources
# ---------------------------------------------------------------------------
BUTTON_TSX = """\
import React from 'react';

interface ButtonProps {
  label: string;
  disabled?: boolean;
}

export const Button: React.FC<ButtonProps> = ({ label, disabled }) => {
  return <button disabled={disabled}>{label}</button>;
};

export default Button;
"""

TOOLBAR_TSX = """\
import React from 'react';
import { Button } from './Button';

export const Toolbar = () => {
  return (
    <div className="toolbar">
      <Button label="Save" />
    </div>
  );
};
"""

PROFILE_TSX = """\
import React, { useState } from 'react';

interface ProfileProps {
  userId: string;
}

export const Profile: React.FC<ProfileProps> = ({ userId }) => {
  const [name, setName] = useState('');

  const handleLoad = async () => {
    try {
      const response = await fetch(`/api/users/${userId}`);
      const data = await response.json();
      setName(data.name);
    } catch (err) {
      setName('');
    }
  };

  return <button onClick={handleLoad}>{name || 'Load'}</button>;
};
"""

GREETING_TSX = """\
import React, { useState } from 'react';
import { api } from '@/lib/api';

export const Greeting = () => {
  const [message, setMessage] = useState('');

  const load = () => api.get('/api/greeting').then((r) => setMessage(r.data));

  return <p title={message}>{message}</p>;
};
"""

COUNTER_TSX = """\
import React, { Component } from 'react';

interface CounterProps {
  step: number;
}

interface CounterState {
  count: number;
}

export class Counter extends Component<CounterProps, CounterState> {
  state = { count: 0 };

  handleIncrement = () => {
    this.setState({ count: this.state.count + this.props.step });
  };

  render() {
    return <button onClick={this.handleIncrement}>{this.state.count}</button>;
  }
}
"""

USE_TOGGLE_TS = """\
import { useState } from 'react';

export function useToggle(initial: boolean = false) {
  const [on, setOn] = useState(initial);
  const toggle = () => setOn(!on);
  return [on, toggle] as const;
}
"""

SIGNUP_FORM_TSX = """\
import React, { useState } from 'react';

export const SignupForm = () => {
  const [email, setEmail] = useState('');
  const [error, setError] = useState('');

  const handleSubmit = () => {
    if (!email.includes('@')) {
      setError('Email is invalid');
      return;
    }
    setError('');
  };

  return (
    <form onSubmit={handleSubmit}>
      <input value={email} onChange={(e) => setEmail(e.target.value)} />
      {error && <span>{error}</span>}
    </form>
  );
};
"""

ORDERS_TSX = """\
import React, { useEffect, useState } from 'react';
import { container } from 'tsyringe';

export const Orders = () => {
  const [orders, setOrders] = useState([]);

  useEffect(() => {
    const listOrders = container.resolve<ListOrders>('ListOrders');
    listOrders.execute().then(setOrders).catch(() => setOrders([]));
  }, []);

  return <ul>{orders.map((o) => <li key={o.id}>{o.name}</li>)}</ul>;
};
"""

BROKEN_TSX = """\
import React from 'react';

export const Broken = () => {
  const value = ;
  return <div>{value}</div>;
};
"""

BARREL_TS = """\
export * from './Button';
export * from './Toolbar';
"""

CYCLE_A_TSX = """\
import React from 'react';
import { B } from './B';

export const A = () => <B />;
"""

CYCLE_B_TSX = """\
import React from 'react';
import { A } from './A';

export const B = () => <A />;
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture
def extractor() -> TSXExtractor:
    return TSXExtractor()


@pytest.fixture
def analyzer() -> BusinessLogicAnalyzer:
    return BusinessLogicAnalyzer()


@pytest.fixture
def analyzed(extractor, analyzer):
    """Extract and analyze source text in one call."""
    def _analyzed(source_text: str, source_path: str):
        return analyzer.enrich(extractor.extract(source_text, source_path))
    return _analyzed


def write_tree(root: Path, files: Dict[str, str]) -> Path:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def source_tree(tmp_path) -> Path:
    """Acyclic v1 tree: Toolbar renders Button; a barrel and two standalone modules."""
    return write_tree(tmp_path / "src", {
        "components/Button.tsx": BUTTON_TSX,
        "components/Toolbar.tsx": TOOLBAR_TSX,
        "components/Profile.tsx": PROFILE_TSX,
        "components/index.ts": BARREL_TS,
        "hooks/useToggle.ts": USE_TOGGLE_TS,
        "components/Button.test.tsx": "it('renders', () => {});\n",
    })


@pytest.fixture
def cyclic_tree(tmp_path) -> Path:
    """A and B import each other; Button stands alone."""
    return write_tree(tmp_path / "src", {
        "A.tsx": CYCLE_A_TSX,
        "B.tsx": CYCLE_B_TSX,
        "Button.tsx": BUTTON_TSX,
    })


@pytest.fixture
def make_config(tmp_path):
    """MigrationConfig factory with fast retries."""
    def _make_config(source_root: Path, **overrides) -> MigrationConfig:
        values = dict(
            source_root=str(source_root),
            output_root=str(tmp_path / "out"),
            retry=RetryPolicy(max_attempts=2, base_delay=0.0),
            operation_timeout=10.0,
            component_timeout=30.0,
        )
        values.update(overrides)
        return MigrationConfig(**values)
    return _make_config
