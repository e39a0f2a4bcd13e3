"""picks board schema

Revision ID: 0001
Revises:
Create Date: 2024-08-10 00:00:00.000000
"""
from alembic import op


revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
        CREATE TABLE IF NOT EXISTS btts_picks (
          id BIGSERIAL PRIMARY KEY,
          fixture_id TEXT NOT NULL,
          league TEXT NOT NULL,
          gameweek INTEGER,
          home_team TEXT NOT NULL,
          away_team TEXT NOT NULL,
          home_team_rate DOUBLE PRECISION NOT NULL,
          away_team_rate DOUBLE PRECISION NOT NULL,
          home_sample_size INTEGER,
          away_sample_size INTEGER,
          probability DOUBLE PRECISION NOT NULL,
          confidence INTEGER NOT NULL,
          pick_rank INTEGER,
          kickoff_time TIMESTAMPTZ,
          match_date DATE,
          venue TEXT,
          created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
          CONSTRAINT uq_btts_picks_fixture UNIQUE (fixture_id),
          CONSTRAINT ck_btts_picks_probability CHECK (probability >= 0 AND probability <= 1),
          CONSTRAINT ck_btts_picks_confidence CHECK (confidence >= 0 AND confidence <= 100)
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_btts_picks_kickoff ON btts_picks(kickoff_time)")
    op.execute("CREATE INDEX IF NOT EXISTS idx_btts_picks_league_prob ON btts_picks(league, probability DESC)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS team_btts_stats (
          id BIGSERIAL PRIMARY KEY,
          team_name TEXT NOT NULL,
          league TEXT NOT NULL,
          recency_weighted_rate DOUBLE PRECISION NOT NULL,
          sample_size INTEGER NOT NULL DEFAULT 0,
          updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
          CONSTRAINT uq_team_btts_stats_team_league UNIQUE (team_name, league)
        )
        """
    )

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS btts_analysis (
          id BIGSERIAL PRIMARY KEY,
          premier_league_gameweek INTEGER,
          championship_gameweek INTEGER,
          gameweeks JSONB NOT NULL DEFAULT '{}'::jsonb,
          total_picks INTEGER NOT NULL DEFAULT 0,
          average_confidence INTEGER NOT NULL DEFAULT 0,
          threshold DOUBLE PRECISION NOT NULL,
          window_size INTEGER NOT NULL,
          last_updated TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_btts_analysis_last_updated ON btts_analysis(last_updated DESC)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS api_cache (
          cache_key TEXT PRIMARY KEY,
          payload JSONB NOT NULL DEFAULT '{}'::jsonb,
          expires_at TIMESTAMPTZ NOT NULL,
          created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_api_cache_expires ON api_cache(expires_at)")

    op.execute(
        """
        CREATE TABLE IF NOT EXISTS job_runs (
          id BIGSERIAL PRIMARY KEY,
          job_name TEXT NOT NULL,
          status VARCHAR(20) NOT NULL DEFAULT 'running',
          triggered_by TEXT,
          started_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
          finished_at TIMESTAMPTZ,
          error TEXT,
          meta JSONB NOT NULL DEFAULT '{}'::jsonb
        )
        """
    )
    op.execute("CREATE INDEX IF NOT EXISTS idx_job_runs_job_started ON job_runs(job_name, started_at DESC)")


def downgrade():
    op.execute("DROP TABLE IF EXISTS job_runs")
    op.execute("DROP TABLE IF EXISTS api_cache")
    op.execute("DROP TABLE IF EXISTS btts_analysis")
    op.execute("DROP TABLE IF EXISTS team_btts_stats")
    op.execute("DROP TABLE IF EXISTS btts_picks")
