# tempokey: offline tempo (BPM) and key (Camelot) estimation for DJ libraries
# Package: tempokey

__version__ = "1.0.0"
__description__ = "Offline BPM and musical key estimation with Camelot notation"

# Module structure:
#   - tempokey.analyze      : DSP stages (envelope, bpm, spectrum, chroma, key)
#   - tempokey.pipeline     : In-process tempo + key pipeline, AnalysisResult
#   - tempokey.worker       : Worker process and message protocol
#   - tempokey.orchestrator : Async decode -> worker -> result, progress, cancellation
#   - tempokey.decode       : aubio-based decoder adapter
#   - tempokey.config       : Configuration management
#   - tempokey.cli          : Command-line interface
