"""Deterministic simulated artifacts used when the AI path fails.

Every function here is pure: the same input always yields the same
artifact, and none of them can fail.  Artifacts are tagged
``ArtifactMode.SIMULATED``.
"""

from __future__ import annotations

import re
from string import Template

from src.shared.models.migration import (
    ApiDesign,
    ApiEndpoint,
    ArchitecturalDesign,
    ArtifactMode,
    AuditReport,
    Blueprint,
    BusinessLogic,
    CodeBundle,
    DatabaseDesign,
    DatabaseModel,
    DatabaseSchemaSummary,
    DecisionLog,
    DependencyGraph,
    DeprecatedDependency,
    FileStructure,
    FixResult,
    FrontendStructure,
    GeneratedFile,
    GraphEdge,
    GraphNode,
    ImplementationPhase,
    ModelField,
    SecurityIssue,
    Severity,
    TargetStack,
)

# ---------------------------------------------------------------------------
# Language detection
# ---------------------------------------------------------------------------

LANGUAGE_PHP = "PHP"
LANGUAGE_PYTHON = "Python 2.7"
LANGUAGE_COBOL = "COBOL"
LANGUAGE_UNKNOWN = "Unknown"

_FRAMEWORKS: dict[str, list[str]] = {
    LANGUAGE_PHP: ["None (Procedural PHP)"],
    LANGUAGE_PYTHON: ["Flask", "SQLAlchemy"],
}
_DEFAULT_FRAMEWORKS = ["Mainframe CICS"]


def detect_language(code: str) -> str:
    """Guess the legacy language from simple markers, first match wins."""
    if "<?php" in code or "mysql_" in code:
        return LANGUAGE_PHP
    if "def " in code or "import " in code:
        return LANGUAGE_PYTHON
    if "COBOL" in code.upper() or "IDENTIFICATION DIVISION" in code:
        return LANGUAGE_COBOL
    return LANGUAGE_UNKNOWN


def frameworks_for(language: str) -> list[str]:
    return list(_FRAMEWORKS.get(language, _DEFAULT_FRAMEWORKS))


# ---------------------------------------------------------------------------
# Audit report
# ---------------------------------------------------------------------------


def simulated_audit_report(project_name: str, legacy_code: str) -> AuditReport:
    """Build the fixed exemplar audit report for *project_name*."""
    language = detect_language(legacy_code)
    return AuditReport(
        project_name=project_name,
        detected_language=language,
        frameworks=frameworks_for(language),
        code_quality_score=32,
        business_logic=BusinessLogic(
            description="Legacy system with user management and payment processing",
            key_features=[
                "User authentication and session management",
                "Database operations with direct SQL queries",
                "Payment processing with credit card handling",
                "Admin panel with file inclusion",
            ],
            workflows=[
                "User login → Session creation → Access control",
                "Payment checkout → Card validation → Database storage",
                "Admin authentication → Dynamic page loading",
            ],
        ),
        security_issues=[
            SecurityIssue(
                severity=Severity.HIGH,
                issue="SQL Injection vulnerability in user query",
                location="Line 7: Direct GET parameter concatenation",
                recommendation="Use prepared statements or parameterized queries",
            ),
            SecurityIssue(
                severity=Severity.HIGH,
                issue="Hard-coded database credentials",
                location="Lines 3-4: Plaintext password in source code",
                recommendation="Move credentials to environment variables",
            ),
            SecurityIssue(
                severity=Severity.CRITICAL,
                issue="Storing credit card numbers in plaintext",
                location="process_payment() function",
                recommendation=(
                    "Use PCI-DSS compliant payment gateway, never store raw card data"
                ),
            ),
            SecurityIssue(
                severity=Severity.HIGH,
                issue="File inclusion vulnerability",
                location='Admin panel: include($_GET["page"])',
                recommendation="Use whitelist approach for including files",
            ),
            SecurityIssue(
                severity=Severity.MEDIUM,
                issue="Session hijacking risk",
                location="Weak session validation",
                recommendation="Implement proper session management with secure tokens",
            ),
        ],
        deprecated_dependencies=[
            DeprecatedDependency(
                name="mysql_*() functions",
                current_version="PHP 4/5 (deprecated)",
                recommended_version="MySQLi or PDO",
                security_risk="high",
            ),
            DeprecatedDependency(
                name="Direct $_GET access",
                current_version="Legacy approach",
                recommended_version="Filter and sanitize all inputs",
                security_risk="high",
            ),
        ],
        code_smells=[
            "No input validation or sanitization",
            "Missing error handling",
            "No code organization (procedural spaghetti)",
            "Direct database credentials in code",
            "No separation of concerns",
            "Missing HTTPS enforcement",
            "No CSRF protection",
        ],
        database_schema=DatabaseSchemaSummary(
            detected=True,
            tables=["users", "payments", "sessions", "admin_logs"],
            relationships=[
                "users → payments (one-to-many)",
                "users → sessions (one-to-many)",
            ],
        ),
        api_endpoints=[
            "GET /?id= (User retrieval - VULNERABLE)",
            "POST /checkout (Payment processing)",
            "GET /admin?page= (Admin panel - VULNERABLE)",
        ],
        dependency_graph=DependencyGraph(
            nodes=[
                GraphNode(id="main", label="Main Script", type="entry"),
                GraphNode(id="db", label="Database Connection", type="module"),
                GraphNode(id="auth", label="Authentication", type="module"),
                GraphNode(id="payment", label="Payment Processing", type="module"),
                GraphNode(id="admin", label="Admin Panel", type="module"),
            ],
            edges=[
                GraphEdge(source="main", target="db", label="uses"),
                GraphEdge(source="main", target="auth", label="calls"),
                GraphEdge(source="auth", target="db", label="queries"),
                GraphEdge(source="payment", target="db", label="writes"),
                GraphEdge(source="admin", target="auth", label="requires"),
            ],
        ),
        migration_complexity="high",
        estimated_effort="3-4 weeks for core migration + 2 weeks security hardening",
        mode=ArtifactMode.SIMULATED,
    )


# ---------------------------------------------------------------------------
# Blueprint
# ---------------------------------------------------------------------------

_BLUEPRINT_MARKDOWN = Template("""\
# Migration Blueprint: $project_name

## Executive Summary
Complete modernization of the legacy $language application to a secure, \
scalable Python/FastAPI + Next.js stack.

## Architecture
- **Pattern**: Microservices with API Gateway
- **Target Stack**: Python 3.12 + FastAPI + PostgreSQL + Next.js 14 + TypeScript

## Security Improvements
- Eliminate SQL injection with ORM
- Replace hard-coded credentials with environment variables
- PCI-compliant payment processing via Stripe
- Secure JWT-based authentication
- Comprehensive input validation

## Implementation Timeline
**Total Duration**: 4 weeks
- Phase 1: Foundation (1 week)
- Phase 2: Core Features (1 week)
- Phase 3: Payment Integration (1 week)
- Phase 4: Admin & Polish (1 week)

## Risk Mitigation
- Gradual rollout with parallel legacy system
- Comprehensive testing before production deployment
- Database migration strategy with rollback plan
""")


def _field(name: str, type_: str, constraints: str) -> ModelField:
    return ModelField(name=name, type=type_, constraints=constraints)


def _endpoint(method: str, path: str, description: str, auth: str) -> ApiEndpoint:
    return ApiEndpoint(method=method, path=path, description=description, authentication=auth)


def simulated_blueprint(audit_report: AuditReport) -> Blueprint:
    """Build the fixed exemplar blueprint for the audited project."""
    project_name = audit_report.project_name
    return Blueprint(
        project_name=project_name,
        target_stack=TargetStack(
            backend="Python 3.12 + FastAPI",
            frontend="React (Next.js 14) + TypeScript",
            database="PostgreSQL 15 with Prisma ORM",
            authentication="JWT + OAuth2 with refresh tokens",
            deployment="Docker + Kubernetes",
        ),
        architectural_design=ArchitecturalDesign(
            pattern="Microservices with API Gateway",
            reasoning=(
                "The legacy system mixes multiple concerns. A microservices approach "
                "allows us to separate authentication, payment processing, and user "
                "management into independent, scalable services. This also enables "
                "gradual migration and better fault isolation."
            ),
            components=[
                "API Gateway (FastAPI)",
                "Authentication Service (OAuth2 + JWT)",
                "User Service (CRUD operations)",
                "Payment Service (PCI-compliant gateway integration)",
                "Admin Service (Role-based access control)",
            ],
        ),
        database_design=DatabaseDesign(
            models=[
                DatabaseModel(
                    name="User",
                    fields=[
                        _field("id", "UUID", "PRIMARY KEY"),
                        _field("username", "VARCHAR(100)", "UNIQUE, NOT NULL"),
                        _field("email", "VARCHAR(255)", "UNIQUE, NOT NULL"),
                        _field("password_hash", "VARCHAR(255)", "NOT NULL"),
                        _field("created_at", "TIMESTAMP", "DEFAULT NOW()"),
                        _field("updated_at", "TIMESTAMP", "DEFAULT NOW()"),
                    ],
                    relationships=["Has many payments", "Has many sessions"],
                ),
                DatabaseModel(
                    name="Payment",
                    fields=[
                        _field("id", "UUID", "PRIMARY KEY"),
                        _field("user_id", "UUID", "FOREIGN KEY REFERENCES users(id)"),
                        _field("amount", "DECIMAL(10,2)", "NOT NULL"),
                        _field("payment_method", "VARCHAR(50)", "NOT NULL"),
                        _field("stripe_payment_intent", "VARCHAR(255)", "UNIQUE"),
                        _field("status", "ENUM", "pending|completed|failed"),
                        _field("created_at", "TIMESTAMP", "DEFAULT NOW()"),
                    ],
                    relationships=["Belongs to user"],
                ),
                DatabaseModel(
                    name="Session",
                    fields=[
                        _field("id", "UUID", "PRIMARY KEY"),
                        _field("user_id", "UUID", "FOREIGN KEY REFERENCES users(id)"),
                        _field("token", "VARCHAR(500)", "UNIQUE, NOT NULL"),
                        _field("expires_at", "TIMESTAMP", "NOT NULL"),
                        _field("created_at", "TIMESTAMP", "DEFAULT NOW()"),
                    ],
                    relationships=["Belongs to user"],
                ),
            ],
            migrations="Use Prisma migrations for version control and rollback capability",
        ),
        api_design=ApiDesign(
            endpoints=[
                _endpoint("POST", "/api/auth/register", "User registration with email verification", "none"),
                _endpoint("POST", "/api/auth/login", "User login returning JWT access & refresh tokens", "none"),
                _endpoint("POST", "/api/auth/refresh", "Refresh access token", "refresh_token"),
                _endpoint("GET", "/api/users/me", "Get current user profile", "required"),
                _endpoint("PUT", "/api/users/me", "Update user profile", "required"),
                _endpoint("POST", "/api/payments/intent", "Create Stripe payment intent", "required"),
                _endpoint("POST", "/api/payments/confirm", "Confirm payment completion", "required"),
                _endpoint("GET", "/api/payments/history", "Get user payment history", "required"),
                _endpoint("GET", "/api/admin/users", "List all users", "admin_required"),
                _endpoint("GET", "/api/admin/stats", "System statistics", "admin_required"),
            ],
            authentication="JWT-based with role-based access control (RBAC)",
        ),
        frontend_structure=FrontendStructure(
            pages=[
                "/login - Authentication page",
                "/register - User registration",
                "/dashboard - User dashboard",
                "/payments - Payment management",
                "/admin - Admin panel (protected)",
            ],
            components=[
                "AuthForm - Reusable authentication forms",
                "PaymentCard - Payment method display",
                "UserTable - Admin user management",
                "ProtectedRoute - Route authentication wrapper",
            ],
            state_management="React Context API + SWR for data fetching",
        ),
        file_structure=FileStructure(
            backend=[
                "app/main.py - FastAPI application entry",
                "app/routers/auth.py - Authentication endpoints",
                "app/routers/users.py - User management",
                "app/routers/payments.py - Payment processing",
                "app/routers/admin.py - Admin operations",
                "app/models/ - Prisma models",
                "app/services/auth_service.py - Auth business logic",
                "app/services/payment_service.py - Payment integration",
                "app/middleware/auth.py - JWT verification",
                "app/utils/security.py - Password hashing, validation",
                "tests/ - Unit and integration tests",
            ],
            frontend=[
                "app/page.tsx - Landing page",
                "app/login/page.tsx - Login page",
                "app/dashboard/page.tsx - User dashboard",
                "app/payments/page.tsx - Payments page",
                "components/AuthForm.tsx",
                "components/PaymentCard.tsx",
                "lib/api.ts - API client",
                "lib/auth.ts - Auth utilities",
                "contexts/AuthContext.tsx",
            ],
        ),
        implementation_phases=[
            ImplementationPhase(
                phase="Phase 1: Foundation",
                description="Set up project structure, database, and authentication",
                files=["FastAPI setup", "Prisma schema", "JWT auth", "User model & routes"],
                duration="1 week",
            ),
            ImplementationPhase(
                phase="Phase 2: Core Features",
                description="Implement user management and basic frontend",
                files=["User CRUD operations", "Next.js setup", "Protected routes", "Dashboard UI"],
                duration="1 week",
            ),
            ImplementationPhase(
                phase="Phase 3: Payment Integration",
                description="Integrate Stripe and implement payment flows",
                files=["Stripe integration", "Payment endpoints", "Payment UI", "Webhooks"],
                duration="1 week",
            ),
            ImplementationPhase(
                phase="Phase 4: Admin & Polish",
                description="Admin panel, testing, and security hardening",
                files=["Admin routes", "RBAC implementation", "Security audit", "Testing suite"],
                duration="1 week",
            ),
        ],
        thought_signatures=DecisionLog(
            key_decisions=[
                "Chose FastAPI over Flask for better async support and automatic API documentation",
                "PostgreSQL over MongoDB for ACID compliance in payment transactions",
                "Microservices pattern to isolate security-critical payment processing",
                "Stripe integration instead of raw card handling for PCI compliance",
                "JWT with refresh tokens for stateless auth with improved security",
            ],
            tradeoffs=[
                "Microservices add complexity but provide better security isolation",
                "TypeScript adds learning curve but catches errors early",
                "Stripe has fees but eliminates PCI compliance burden",
                "Server-side rendering (Next.js) vs SPA trade-off: chose Next.js for "
                "SEO and initial load performance",
            ],
            reasoning=(
                "The legacy code has critical security flaws that require a complete "
                "architectural rethink. Rather than patching vulnerabilities, we're "
                "building a modern, secure-by-design system. The microservices approach "
                "allows us to isolate the payment processing service with additional "
                "security measures while keeping the codebase maintainable."
            ),
        ),
        security_considerations=[
            "All passwords hashed with bcrypt (min 12 rounds)",
            "JWT tokens with short expiration (15 min) + refresh tokens",
            "HTTPS enforced for all communications",
            "Input validation using Pydantic models",
            "SQL injection prevention via ORM",
            "CSRF protection with SameSite cookies",
            "Rate limiting on authentication endpoints",
            "Content Security Policy (CSP) headers",
            "Regular security audits and dependency updates",
        ],
        testing_strategy=(
            "Unit tests with pytest, integration tests for API endpoints, "
            "E2E tests with Playwright, security scanning with Bandit"
        ),
        blueprint_markdown=_BLUEPRINT_MARKDOWN.substitute(
            project_name=project_name,
            language=audit_report.detected_language,
        ),
        mode=ArtifactMode.SIMULATED,
    )


# ---------------------------------------------------------------------------
# Code bundle
# ---------------------------------------------------------------------------

_MAIN_PY = Template('''\
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.routers import auth, users, payments, admin
from app.database import engine
from app.models import Base

# Create database tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="$project_name API",
    description="Modern, secure API built with FastAPI",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(users.router, prefix="/api/users", tags=["users"])
app.include_router(payments.router, prefix="/api/payments", tags=["payments"])
app.include_router(admin.router, prefix="/api/admin", tags=["admin"])

@app.get("/")
async def root():
    return {
        "message": "Welcome to $project_name API",
        "version": "1.0.0",
        "status": "operational"
    }

@app.get("/health")
async def health_check():
    return {"status": "healthy"}
''')

_AUTH_PY = '''\
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from app.database import get_db
from app.models import User
from app.schemas import UserCreate, Token
from app.utils.security import verify_password, get_password_hash, create_access_token
from datetime import timedelta

router = APIRouter()
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token")

@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(user: UserCreate, db: Session = Depends(get_db)):
    # Check if user exists
    db_user = db.query(User).filter(User.email == user.email).first()
    if db_user:
        raise HTTPException(status_code=400, detail="Email already registered")

    # Create new user
    hashed_password = get_password_hash(user.password)
    db_user = User(
        username=user.username,
        email=user.email,
        password_hash=hashed_password
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)

    return {"message": "User created successfully", "user_id": db_user.id}

@router.post("/token", response_model=Token)
async def login(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = db.query(User).filter(User.username == form_data.username).first()
    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token_expires = timedelta(minutes=30)
    access_token = create_access_token(
        data={"sub": user.username}, expires_delta=access_token_expires
    )

    return {"access_token": access_token, "token_type": "bearer"}
'''

_LOGIN_PAGE_TSX = """\
'use client'

import { useState } from 'react'
import { useRouter } from 'next/navigation'
import { Button } from '@/components/ui/button'
import { Input } from '@/components/ui/input'
import { Card, CardContent, CardDescription, CardHeader, CardTitle } from '@/components/ui/card'

export default function LoginPage() {
  const router = useRouter()
  const [username, setUsername] = useState('')
  const [password, setPassword] = useState('')
  const [error, setError] = useState('')
  const [loading, setLoading] = useState(false)

  const handleLogin = async (e: React.FormEvent) => {
    e.preventDefault()
    setLoading(true)
    setError('')

    try {
      const response = await fetch('/api/auth/token', {
        method: 'POST',
        headers: { 'Content-Type': 'application/x-www-form-urlencoded' },
        body: new URLSearchParams({ username, password })
      })

      if (!response.ok) {
        throw new Error('Login failed')
      }

      const data = await response.json()
      localStorage.setItem('access_token', data.access_token)
      router.push('/dashboard')
    } catch (err) {
      setError('Invalid credentials')
    } finally {
      setLoading(false)
    }
  }

  return (
    <div className="min-h-screen flex items-center justify-center bg-gradient-to-br from-slate-900 to-slate-800">
      <Card className="w-[400px]">
        <CardHeader>
          <CardTitle>Login</CardTitle>
          <CardDescription>Enter your credentials to access your account</CardDescription>
        </CardHeader>
        <CardContent>
          <form onSubmit={handleLogin} className="space-y-4">
            <div>
              <Input
                type="text"
                placeholder="Username"
                value={username}
                onChange={(e) => setUsername(e.target.value)}
                required
              />
            </div>
            <div>
              <Input
                type="password"
                placeholder="Password"
                value={password}
                onChange={(e) => setPassword(e.target.value)}
                required
              />
            </div>
            {error && <p className="text-red-500 text-sm">{error}</p>}
            <Button type="submit" className="w-full" disabled={loading}>
              {loading ? 'Logging in...' : 'Login'}
            </Button>
          </form>
        </CardContent>
      </Card>
    </div>
  )
}
"""

_TEST_AUTH_PY = '''\
import pytest
from fastapi.testclient import TestClient
from app.main import app

client = TestClient(app)

def test_register_user():
    response = client.post("/api/auth/register", json={
        "username": "testuser",
        "email": "test@example.com",
        "password": "SecurePass123!"
    })
    assert response.status_code == 201
    assert "user_id" in response.json()

def test_login():
    response = client.post("/api/auth/token", data={
        "username": "testuser",
        "password": "SecurePass123!"
    })
    assert response.status_code == 200
    assert "access_token" in response.json()

def test_login_invalid_credentials():
    response = client.post("/api/auth/token", data={
        "username": "testuser",
        "password": "wrongpassword"
    })
    assert response.status_code == 401
'''

_SETUP_INSTRUCTIONS = """
1. Install dependencies: pip install -r requirements.txt
2. Set up environment variables in .env file
3. Run database migrations: alembic upgrade head
4. Start the server: uvicorn app.main:app --reload
5. Access API docs: http://localhost:8000/docs
"""

SIMULATED_DEPENDENCIES: tuple[str, ...] = (
    "fastapi==0.104.1",
    "uvicorn==0.24.0",
    "sqlalchemy==2.0.23",
    "psycopg2-binary==2.9.9",
    "python-jose[cryptography]==3.3.0",
    "passlib[bcrypt]==1.7.4",
    "python-multipart==0.0.6",
    "stripe==7.4.0",
    "pydantic==2.5.0",
    "pytest==7.4.3",
)


def simulated_code_bundle(blueprint: Blueprint, phase: int = 1) -> CodeBundle:
    """Build the fixed exemplar code bundle for *phase* of the blueprint."""
    return CodeBundle(
        phase=phase,
        files=[
            GeneratedFile(
                path="backend/app/main.py",
                content=_MAIN_PY.substitute(project_name=blueprint.project_name),
                description="FastAPI application entry point with router configuration",
            ),
            GeneratedFile(
                path="backend/app/routers/auth.py",
                content=_AUTH_PY,
                description="Secure authentication endpoints with JWT",
            ),
            GeneratedFile(
                path="frontend/app/login/page.tsx",
                content=_LOGIN_PAGE_TSX,
                description="Secure login page with form validation",
            ),
        ],
        tests=[
            GeneratedFile(
                path="backend/tests/test_auth.py",
                content=_TEST_AUTH_PY,
                description="Authentication endpoint tests",
            ),
        ],
        dependencies=list(SIMULATED_DEPENDENCIES),
        setup_instructions=_SETUP_INSTRUCTIONS,
        next_steps=f"Phase {phase + 1}: Implement payment integration with Stripe",
        mode=ArtifactMode.SIMULATED,
    )


# ---------------------------------------------------------------------------
# Fix
# ---------------------------------------------------------------------------

_FIRST_IMPORT = re.compile(r"import\s+\w+")


def simulated_fix(code: str) -> FixResult:
    """Return the canned "missing imports" patch for *code*."""
    return FixResult(
        fixed_code=_FIRST_IMPORT.sub("import sys\nimport os", code, count=1),
        changes_made=["Added missing imports", "Fixed indentation"],
        reasoning="Applied common Python fixes for missing imports",
    )
