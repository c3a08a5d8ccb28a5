"""
定时伸缩演示

创建一个工作负载和一个每分钟触发的 CronHPA，观察副本数随调度变化，
并验证重启控制器后 lastRuntimes 被恢复、任务不会重复触发。
"""

import tempfile
import time

import ray

from cronscale.core import RayCronScaler


MANIFEST = {
    "apiVersion": "autoscal.aiops.org/v1",
    "kind": "CronHPA",
    "metadata": {"name": "demo-every-minute", "namespace": "default"},
    "spec": {
        "scaleTarget": {"apiVersion": "apps/v1", "kind": "Deployment", "name": "demo-web"},
        "jobs": [
            {"name": "every-minute", "schedule": "* * * * *", "size": 3},
        ],
    },
}


def demo_cron_scaling():
    print("=" * 60)
    print("定时伸缩演示")
    print("=" * 60)

    ray.init(ignore_reinit_error=True)
    state_dir = tempfile.mkdtemp(prefix="cronscale-demo-")
    scaler = RayCronScaler("cron-demo", state_path=state_dir)

    try:
        print("\n1️⃣  创建工作负载 demo-web (1 副本)...")
        assert scaler.create_workload("demo-web", replicas=1)["success"]

        print("\n2️⃣  提交 CronHPA...")
        assert scaler.apply(MANIFEST)["success"]

        print("\n3️⃣  执行一次调和...")
        outcome = scaler.reconcile("demo-every-minute")
        print(f"   触发的任务: {outcome['result']['fired']}")
        print(f"   下次调和间隔: {outcome['result']['requeue_after']:.1f}s")
        print(f"   当前副本数: {scaler.get_workload('demo-web')['workload']['replicas']}")

        print("\n4️⃣  立即再次调和（应为空操作）...")
        outcome = scaler.reconcile("demo-every-minute")
        print(f"   触发的任务: {outcome['result']['fired']}")
    finally:
        scaler.shutdown()

    print("\n5️⃣  重启控制器，从状态文件恢复...")
    scaler = RayCronScaler("cron-demo", state_path=state_dir)
    try:
        resource = scaler.get_resource("demo-every-minute")["resource"]
        print(f"   恢复的 lastRuntimes: {resource['status']['lastRuntimes']}")
        scaler.start()
        time.sleep(2)
        print(f"   控制器状态: {scaler.stats()}")
    finally:
        scaler.shutdown()
        ray.shutdown()


if __name__ == "__main__":
    demo_cron_scaling()
