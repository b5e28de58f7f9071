#!/usr/bin/env python3
"""
Cliente de línea de comandos para el trabajador de fotomosaicos.

Lee la imagen objetivo y las del pool, las envía fragmentadas a un proceso
trabajador nuevo, muestra el avance y guarda el mosaico resultante.
Ejemplo: `python generate_mosaic.py --target foto.png --pool img/ --tile-size 20`.
"""

from __future__ import annotations

import argparse
import queue
import sys
from pathlib import Path
from typing import Iterable, List, Sequence

from tqdm import tqdm

from mosaic_worker import spawn_worker
from mosaic_worker.config import settings
from mosaic_worker.logging_config import configure_logging
from mosaic_worker.services import decode_data_uri


IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp"}


def collect_pool_files(paths: Iterable[Path]) -> List[Path]:
    """Expande directorios a sus imágenes (orden alfabético) y conserva los archivos sueltos."""
    files: List[Path] = []
    for path in paths:
        if path.is_dir():
            files.extend(
                sorted(child for child in path.iterdir() if child.suffix.lower() in IMAGE_EXTENSIONS)
            )
        elif path.is_file():
            files.append(path)
        else:
            print(f"[warn] Se omite {path}: no existe")
    return files


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Genera un fotomosaico reemplazando cada tesela por la imagen del pool de color más cercano."
    )
    parser.add_argument("--target", type=Path, required=True, help="Imagen objetivo a reconstruir.")
    parser.add_argument(
        "--pool",
        type=Path,
        nargs="+",
        required=True,
        help="Imágenes candidatas o directorios que las contienen.",
    )
    parser.add_argument(
        "--tile-size",
        type=int,
        default=settings.default_tile_size,
        help=f"Lado de cada tesela en píxeles (predeterminado: {settings.default_tile_size})",
    )
    parser.add_argument(
        "--blend",
        type=float,
        default=settings.default_color_blend,
        help="Opacidad de la textura frente al color plano, entre 0 y 1 "
        f"(predeterminado: {settings.default_color_blend})",
    )
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=settings.chunk_size,
        help=f"Bytes por fragmento enviado al trabajador (predeterminado: {settings.chunk_size})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=settings.outputs_dir / "mosaic.png",
        help="Ruta del mosaico generado.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=300.0,
        help="Segundos máximos de espera entre mensajes del trabajador.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Nivel de registro en consola (predeterminado: WARNING; el archivo de log siempre guarda DEBUG)",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    if not args.target.is_file():
        print(f"[error] No se encontró la imagen objetivo: {args.target}")
        return 1
    pool_files = collect_pool_files(args.pool)
    if not pool_files:
        print("[error] No se encontraron imágenes para el pool.")
        return 1
    print(f"[info] {len(pool_files)} imágenes en el pool, teselas de {args.tile_size}px")

    with spawn_worker(log_level=args.log_level) as worker:
        worker.post({"action": "start", "tileSize": args.tile_size, "colorAdjustment": args.blend})
        worker.send_image(args.target.read_bytes(), args.chunk_size)
        for path in pool_files:
            worker.send_image(path.read_bytes(), args.chunk_size)
        worker.post({"action": "process"})

        with tqdm(total=100, desc="Mosaico", unit="%") as bar:
            try:
                for message in worker.messages(timeout=args.timeout):
                    if "progress" in message:
                        bar.set_postfix_str(message["progress"])
                    percentage = message.get("percentage")
                    if percentage is not None and percentage > bar.n:
                        bar.update(percentage - bar.n)
                    if "error" in message:
                        bar.close()
                        print(f"[error] {message['error']}")
                        return 1
                    if "mosaicImage" in message:
                        args.output.parent.mkdir(parents=True, exist_ok=True)
                        args.output.write_bytes(decode_data_uri(message["mosaicImage"]))
            except queue.Empty:
                bar.close()
                print(f"[error] El trabajador no respondió en {args.timeout:.0f}s; se descarta.")
                worker.terminate()
                return 1

    print(f"[ok] Fotomosaico guardado en: {args.output}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.log_level)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
