"""
Strategy Demystify Backend Server
FastAPI + NumPy
"""
import os
import time
from contextlib import asynccontextmanager
from io import StringIO
from typing import Any, Dict, Optional

from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware

from demystify import __version__
from demystify.backtest import run_backtest
from demystify.config import Settings
from demystify.data import load_series_csv, map_timeframe_to_market_type, markets_per_day
from demystify.models import (
    AnalysisResponse, AnalyzeRequest, MarketSnapshot, ParseRequest,
    ScoreRequest, ScoreResult, StrategyParameters,
)
from demystify.parser import parse_strategy
from demystify.scoring import calculate_total_score


def _load_default_data(settings: Settings, data_store: Dict[str, Any]):
    """Load default CSV file on startup"""
    path = settings.default_data_path
    if not path:
        return

    if os.path.exists(path):
        print(f"🚀 Loading default data from {path}...")
        try:
            data_store['series'] = load_series_csv(path)
            print(f"✅ Loaded {len(data_store['series'])} rows from default CSV")
        except ValueError as e:
            print(f"❌ Failed to load default CSV: {e}")
    else:
        print(f"⚠️ Default CSV not found at {path}")


def _series_kind(series) -> str:
    if series and isinstance(series[0], MarketSnapshot):
        return 'snapshots'
    return 'bars'


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    # Per-app storage of the uploaded series
    data_store: Dict[str, Any] = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application startup/shutdown lifecycle"""
        _load_default_data(settings, data_store)
        yield

    app = FastAPI(title="Strategy Demystify Backend", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.data_store = data_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def read_root():
        """Health check"""
        return {
            "status": "online",
            "service": "Strategy Demystify Backend",
            "version": __version__,
        }

    @app.get("/status")
    def get_status():
        """Get backend status"""
        series = data_store.get('series') or []
        return {
            "data_loaded": 'series' in data_store,
            "kind": _series_kind(series) if series else None,
            "rows": len(series),
        }

    @app.post("/upload-csv")
    async def upload_csv(file: UploadFile = File(...)):
        """Upload OHLCV or market snapshot CSV"""
        try:
            start_time = time.time()

            contents = await file.read()
            series = load_series_csv(StringIO(contents.decode('utf-8')))
            data_store['series'] = series

            elapsed = time.time() - start_time
            return {
                "success": True,
                "kind": _series_kind(series),
                "rows": len(series),
                "elapsed_seconds": round(elapsed, 2),
                "message": f"✅ Loaded {len(series)} rows in {elapsed:.2f}s",
            }

        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/parse", response_model=StrategyParameters)
    def parse(request: ParseRequest):
        """Parse a strategy description"""
        return parse_strategy(request.strategy)

    @app.post("/backtest", response_model=AnalysisResponse)
    def analyze(request: AnalyzeRequest):
        """Parse -> backtest -> score"""
        try:
            start_time = time.time()

            if request.snapshots:
                series = request.snapshots
            elif request.bars:
                series = request.bars
            elif 'series' in data_store:
                series = data_store['series']
            else:
                raise HTTPException(status_code=400, detail="No data loaded. Upload CSV or send bars/snapshots.")

            params = parse_strategy(request.strategy)
            market_type = map_timeframe_to_market_type(request.timeframe)
            config = settings.backtest.model_copy(
                update={"markets_per_day": markets_per_day(request.timeframe)}
            )

            result = run_backtest(series, params, config)
            score = calculate_total_score(result.metrics, result.metrics.totalTrades)

            elapsed = time.time() - start_time
            print(f"⚡ Backtest ({result.strategyPath}) completed in {elapsed:.3f}s")

            return AnalysisResponse(
                strategy={
                    "description": request.strategy,
                    "market": request.market,
                    "parsed": params.model_dump(),
                    "recognizedPatterns": params.recognizedPatterns,
                    "unrecognizedPatterns": [u.model_dump() for u in params.unrecognized],
                },
                marketType=market_type,
                backtest=result,
                score=score,
            )

        except HTTPException:
            raise
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    @app.post("/score", response_model=ScoreResult)
    def score(request: ScoreRequest):
        """Score a set of metrics"""
        return calculate_total_score(request.metrics, request.totalTrades)

    return app


app = create_app(Settings.from_env())


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
